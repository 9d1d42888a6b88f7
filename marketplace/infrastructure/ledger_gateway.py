"""Ledger Gateway — typed façade over the marketplace contract via JSON-RPC.

Invariants:
    - Reads use eth_call against "latest"; they may run concurrently
    - Mutating calls require a signer binding (NoSignerError otherwise)
    - get_item raises UnknownItemError for ids outside [1, itemCount]
    - Submission returns a PendingTransaction; confirmation is a separate await

Design Decisions:
    - Stateless: the caller passes the signer, the gateway never caches session data
    - Unknown ids detected from the zero record the public getter returns
      (id == 0), saving an itemCount round-trip per fetch
    - Receipt polling with a fixed interval; timeout policy belongs to the coordinator
"""

import asyncio
import logging

from marketplace.core.domain_types import Identity, ItemId, MAX_UINT256, TxHash, Wei
from marketplace.core.errors import (
    ErrorContext, InvalidAddressError, LedgerRpcError, NoSignerError,
    UnknownItemError, ValidationError,
)
from marketplace.core.ledger_protocols import Signer
from marketplace.core.models import Item, TransactionReceipt
from marketplace.core.validation import is_valid_identity
from marketplace.infrastructure.contract_abi import (
    BUY_ITEM, GET_ITEMS_BY_OWNER, ITEM_COUNT, LIST_ITEM, TRANSFER_ITEM,
    ContractFunction, ITEMS, decode_item,
)
from marketplace.infrastructure.rpc_client import JsonRpcClient

logger = logging.getLogger(__name__)


class RpcPendingTransaction:
    """Submitted transaction awaiting inclusion, observed via eth_getTransactionReceipt."""

    def __init__(
        self, rpc: JsonRpcClient, tx_hash: TxHash, poll_interval_ms: int = 1000,
    ):
        self._rpc = rpc
        self._tx_hash = tx_hash
        self._poll_interval = poll_interval_ms / 1000

    @property
    def tx_hash(self) -> TxHash:
        return self._tx_hash

    async def wait(self) -> TransactionReceipt:
        """Poll until the receipt exists. Never times out on its own."""
        ctx = ErrorContext(tx_hash=self._tx_hash)
        while True:
            receipt = await self._rpc.call(
                "eth_getTransactionReceipt", [self._tx_hash], context=ctx,
            )
            if receipt:
                return TransactionReceipt(
                    tx_hash=self._tx_hash,
                    succeeded=int(receipt.get("status", "0x0"), 16) == 1,
                    block_number=_hex_to_int(receipt.get("blockNumber")),
                )
            await asyncio.sleep(self._poll_interval)


class JsonRpcLedgerGateway:
    """LedgerGateway implementation for a single deployed marketplace contract."""

    def __init__(
        self,
        rpc: JsonRpcClient,
        contract_address: str,
        receipt_poll_interval_ms: int = 1000,
    ):
        self.rpc = rpc
        self.contract_address = contract_address.lower()
        self.receipt_poll_interval_ms = receipt_poll_interval_ms

    # ─── Reads ──────────────────────────────────────────────────

    async def get_item_count(self) -> int:
        (count,) = await self._read(ITEM_COUNT)
        return count

    async def get_item(self, item_id: ItemId) -> Item:
        if item_id < 1:
            raise UnknownItemError(item_id)
        data = await self._read_raw(ITEMS, item_id)
        item = decode_item(data)
        if item.id == 0:
            raise UnknownItemError(item_id)
        return item

    async def get_owned_item_ids(self, owner: Identity) -> list[ItemId]:
        if not is_valid_identity(owner):
            raise InvalidAddressError(owner)
        (ids,) = await self._read(GET_ITEMS_BY_OWNER, owner.lower())
        return [ItemId(i) for i in ids]

    # ─── Mutating calls ─────────────────────────────────────────

    async def submit_listing(
        self, signer: Signer | None, name: str, price: Wei,
    ) -> RpcPendingTransaction:
        if not 0 < price <= MAX_UINT256:
            raise ValidationError(f"Price {price} is not a valid positive amount", "price")
        return await self._submit(
            signer, "list", LIST_ITEM.encode_call(name, price),
        )

    async def submit_purchase(
        self, signer: Signer | None, item_id: ItemId, value: Wei,
    ) -> RpcPendingTransaction:
        return await self._submit(
            signer, "purchase", BUY_ITEM.encode_call(item_id),
            value=value, item_id=item_id,
        )

    async def submit_transfer(
        self, signer: Signer | None, item_id: ItemId, to: str,
    ) -> RpcPendingTransaction:
        if not is_valid_identity(to):
            raise InvalidAddressError(to, ErrorContext(operation="transfer", item_id=item_id))
        return await self._submit(
            signer, "transfer", TRANSFER_ITEM.encode_call(item_id, to.lower()),
            item_id=item_id,
        )

    # ─── Internals ──────────────────────────────────────────────

    async def _read(self, fn: ContractFunction, *args) -> tuple:
        return fn.decode_result(await self._read_raw(fn, *args))

    async def _read_raw(self, fn: ContractFunction, *args) -> str:
        result = await self.rpc.call(
            "eth_call",
            [{"to": self.contract_address, "data": fn.encode_call(*args)}, "latest"],
        )
        if not isinstance(result, str) or result in ("0x", ""):
            raise LedgerRpcError(
                f"{fn.signature} returned no data (is {self.contract_address} the marketplace?)",
            )
        return result

    async def _submit(
        self,
        signer: Signer | None,
        operation: str,
        data: str,
        value: int = 0,
        item_id: ItemId | None = None,
    ) -> RpcPendingTransaction:
        if signer is None:
            raise NoSignerError(ErrorContext(operation=operation, item_id=item_id))
        tx = {"from": signer.identity, "to": self.contract_address, "data": data}
        if value:
            tx["value"] = hex(value)
        tx_hash = await signer.send_transaction(tx)
        logger.info(
            "Transaction submitted",
            extra={
                "operation": operation, "tx_hash": tx_hash,
                "identity": signer.identity, "item_id": item_id,
            },
        )
        return RpcPendingTransaction(
            self.rpc, tx_hash, self.receipt_poll_interval_ms,
        )


def _hex_to_int(value: str | None) -> int | None:
    return int(value, 16) if value else None
