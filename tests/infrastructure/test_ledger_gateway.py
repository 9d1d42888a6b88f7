"""Ledger Gateway — tests for contract reads and transaction submission over JSON-RPC.

Tests cover:
    - itemCount / items / getItemsByOwner decoded into domain types
    - UnknownItemError for id 0 (no call) and for ids past itemCount (zero record)
    - InvalidAddressError / NoSignerError before anything is sent
    - Submission builds from/to/data/value and returns a pollable PendingTransaction
    - Receipt status 0x0 → unsuccessful TransactionReceipt
"""

import pytest

from marketplace.core.domain_types import Identity
from marketplace.core.errors import (
    InvalidAddressError, LedgerRpcError, NoSignerError, UnknownItemError,
)
from marketplace.infrastructure.contract_abi import BUY_ITEM, LIST_ITEM, TRANSFER_ITEM
from marketplace.infrastructure.ledger_gateway import JsonRpcLedgerGateway
from marketplace.infrastructure.signing_agent import JsonRpcSigner

from tests.infrastructure.fake_node import (
    ALICE, BOB, CONTRACT, ETHER, TX_HASH, FakeNode, rpc_for,
)


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def gateway(node):
    return JsonRpcLedgerGateway(
        rpc_for(node.handle), CONTRACT.upper().replace("0X", "0x"),
        receipt_poll_interval_ms=1,
    )


@pytest.fixture
def signer(gateway):
    return JsonRpcSigner(gateway.rpc, Identity(ALICE))


# ==============================================================================
# Reads
# ==============================================================================


async def test_item_count(gateway, node):
    assert await gateway.get_item_count() == 3
    (call,) = node.calls
    assert call["method"] == "eth_call"
    assert call["params"][0]["to"] == CONTRACT
    assert call["params"][1] == "latest"


async def test_get_item_decodes_record(gateway):
    item = await gateway.get_item(2)
    assert (item.id, item.name, item.price, item.owner, item.sold) == (
        2, "Chair", ETHER // 2, BOB, False,
    )


async def test_get_item_past_count_is_unknown(gateway):
    with pytest.raises(UnknownItemError) as exc:
        await gateway.get_item(9)
    assert exc.value.item_id == 9


async def test_get_item_zero_is_unknown_without_a_call(gateway, node):
    with pytest.raises(UnknownItemError):
        await gateway.get_item(0)
    assert node.calls == []


async def test_owned_ids_in_ledger_order(gateway):
    assert await gateway.get_owned_item_ids(Identity(ALICE)) == [1, 3]


async def test_owned_ids_rejects_bad_address(gateway, node):
    with pytest.raises(InvalidAddressError):
        await gateway.get_owned_item_ids(Identity("0x1234"))
    assert node.calls == []


async def test_missing_contract_code_raises(gateway, node):
    node.empty_code = True
    with pytest.raises(LedgerRpcError, match="returned no data"):
        await gateway.get_item_count()


# ==============================================================================
# Submission
# ==============================================================================


async def test_submit_without_signer_raises_no_signer(gateway, node):
    with pytest.raises(NoSignerError):
        await gateway.submit_purchase(None, 2, ETHER // 2)
    assert node.sent == []


async def test_purchase_sends_value_and_waits_for_receipt(gateway, node, signer):
    node.receipt_after = 2
    pending = await gateway.submit_purchase(signer, 2, ETHER // 2)
    assert pending.tx_hash == TX_HASH

    (tx,) = node.sent
    assert tx["from"] == ALICE
    assert tx["to"] == CONTRACT
    assert tx["data"] == BUY_ITEM.encode_call(2)
    assert tx["value"] == hex(ETHER // 2)

    receipt = await pending.wait()
    assert receipt.succeeded
    assert receipt.block_number == 42
    assert node.methods().count("eth_getTransactionReceipt") == 3


async def test_listing_sends_no_value(gateway, node, signer):
    await gateway.submit_listing(signer, "Desk", ETHER)
    (tx,) = node.sent
    assert "value" not in tx
    assert tx["data"] == LIST_ITEM.encode_call("Desk", ETHER)


async def test_transfer_lowercases_recipient(gateway, node, signer):
    await gateway.submit_transfer(signer, 1, BOB.upper().replace("0X", "0x"))
    (tx,) = node.sent
    assert tx["data"] == TRANSFER_ITEM.encode_call(1, BOB)


async def test_transfer_rejects_bad_address(gateway, node, signer):
    with pytest.raises(InvalidAddressError):
        await gateway.submit_transfer(signer, 1, "bob")
    assert node.sent == []


async def test_failed_receipt_is_unsuccessful(gateway, node, signer):
    node.receipt_status = "0x0"
    pending = await gateway.submit_transfer(signer, 1, BOB)
    receipt = await pending.wait()
    assert not receipt.succeeded
    assert receipt.tx_hash == TX_HASH
