"""Fake Ledger + Wallet — in-memory stand-ins for the contract and the signing agent.

Invariants:
    - FakeLedger enforces the contract rules the client relies on:
      purchase value must equal price, item must be unsold, only the owner transfers
    - Effects apply when the pending transaction is confirmed (wait()), not at submit
    - Gates (asyncio.Event) let a test hold a read or a confirmation in flight
    - FakeSigningAgent.emit() behaves like the wallet's accountsChanged event

Design Decisions:
    - Flat fake classes (no inheritance): structural Protocols need none
    - Call logs (item_fetches, owner_lookups, submissions) for asserting what hit the network
"""

import asyncio
import itertools
from dataclasses import replace

from marketplace.core.domain_types import Identity, ItemId, TxHash, Wei
from marketplace.core.errors import (
    AuthorizationDeniedError, InvalidAddressError, NoSignerError,
    TransactionRevertedError, UnknownItemError,
)
from marketplace.core.models import Item, TransactionReceipt
from marketplace.core.subscriptions import HandlerRegistry
from marketplace.core.validation import is_valid_identity

ALICE = Identity("0x" + "a1" * 20)
BOB = Identity("0x" + "b2" * 20)
CAROL = Identity("0x" + "c3" * 20)

ETHER = 10**18


# -- Wallet --------------------------------------------------------------------


class FakeSigner:
    def __init__(self, identity: str):
        self._identity = Identity(identity.lower())

    @property
    def identity(self) -> Identity:
        return self._identity

    async def send_transaction(self, tx: dict) -> TxHash:
        raise AssertionError("FakeLedger never sends raw transactions")


class FakeSigningAgent:
    """Wallet with a list of accounts; the first one is active."""

    def __init__(self, accounts: list[str] | None = None, deny: bool = False):
        self.accounts = list(accounts if accounts is not None else [ALICE])
        self.deny = deny
        self.authorization_requests = 0
        self.signer_requests = 0
        self.handlers = HandlerRegistry()
        self.signer_gate: asyncio.Event | None = None

    async def request_authorization(self) -> list[Identity]:
        self.authorization_requests += 1
        if self.deny:
            raise AuthorizationDeniedError()
        return [Identity(a) for a in self.accounts]

    async def current_signer(self) -> FakeSigner | None:
        self.signer_requests += 1
        if self.signer_gate is not None:
            await self.signer_gate.wait()
        return FakeSigner(self.accounts[0]) if self.accounts else None

    def subscribe(self, handler):
        return self.handlers.register(handler)

    async def emit(self, identity: str | None) -> None:
        """Switch the active account and notify subscribers."""
        self.accounts = [identity] if identity else []
        for handler in self.handlers.snapshot():
            await handler(Identity(identity) if identity else None)


# -- Ledger --------------------------------------------------------------------


class FakePendingTransaction:
    def __init__(self, ledger: "FakeLedger", tx_hash: TxHash, effect):
        self._ledger = ledger
        self._tx_hash = tx_hash
        self._effect = effect
        self.gate: asyncio.Event | None = None

    @property
    def tx_hash(self) -> TxHash:
        return self._tx_hash

    async def wait(self) -> TransactionReceipt:
        if self.gate is not None:
            await self.gate.wait()
        succeeded = self._effect()
        self._ledger.block_number += 1
        return TransactionReceipt(
            self._tx_hash, succeeded, self._ledger.block_number,
        )


class FakeLedger:
    """LedgerGateway over an in-memory item table."""

    def __init__(self, items: list[Item] | None = None):
        self.items: list[Item] = list(items or [])
        self.block_number = 100
        self.item_fetches: list[int] = []
        self.count_reads = 0
        self.owner_lookups: list[str] = []
        self.submissions: list[tuple] = []
        self.pending: list[FakePendingTransaction] = []
        self.owner_gates: dict[str, asyncio.Event] = {}
        self.confirmation_gate: asyncio.Event | None = None
        self.revert_at_submission = False
        self.fail_reads: Exception | None = None
        self._hashes = itertools.count(1)

    # -- seeding --

    def add(self, name: str, price: int, owner: str, sold: bool = False) -> Item:
        item = Item(
            id=ItemId(len(self.items) + 1), name=name, price=Wei(price),
            owner=Identity(owner.lower()), sold=sold,
        )
        self.items.append(item)
        return item

    # -- reads --

    async def get_item_count(self) -> int:
        self.count_reads += 1
        self._maybe_fail()
        return len(self.items)

    async def get_item(self, item_id: ItemId) -> Item:
        self.item_fetches.append(item_id)
        self._maybe_fail()
        # Yield so concurrent fetches interleave
        await asyncio.sleep(0)
        if not 1 <= item_id <= len(self.items):
            raise UnknownItemError(item_id)
        return self.items[item_id - 1]

    async def get_owned_item_ids(self, owner: Identity) -> list[ItemId]:
        self.owner_lookups.append(owner)
        self._maybe_fail()
        # Snapshot before waiting: a held lookup returns what the ledger said then
        ids = [i.id for i in self.items if i.owner == owner.lower()]
        gate = self.owner_gates.get(owner)
        if gate is not None:
            await gate.wait()
        return ids

    # -- mutating --

    async def submit_listing(self, signer, name: str, price: Wei):
        sender = self._sender(signer)

        def effect() -> bool:
            self.add(name, price, sender)
            return True

        return self._submit(("list", sender, name, price), effect)

    async def submit_purchase(self, signer, item_id: ItemId, value: Wei):
        sender = self._sender(signer)

        def effect() -> bool:
            if not 1 <= item_id <= len(self.items):
                return False
            item = self.items[item_id - 1]
            if item.sold or item.owner == sender or value != item.price:
                return False
            self.items[item_id - 1] = replace(item, owner=sender, sold=True)
            return True

        return self._submit(("purchase", sender, item_id, value), effect)

    async def submit_transfer(self, signer, item_id: ItemId, to: str):
        sender = self._sender(signer)
        if not is_valid_identity(to):
            raise InvalidAddressError(to)

        def effect() -> bool:
            if not 1 <= item_id <= len(self.items):
                return False
            item = self.items[item_id - 1]
            if item.owner != sender:
                return False
            self.items[item_id - 1] = replace(item, owner=Identity(to.lower()))
            return True

        return self._submit(("transfer", sender, item_id, to), effect)

    # -- internals --

    def _sender(self, signer) -> Identity:
        if signer is None:
            raise NoSignerError()
        return signer.identity

    def _submit(self, call: tuple, effect) -> FakePendingTransaction:
        self.submissions.append(call)
        if self.revert_at_submission:
            raise TransactionRevertedError("execution reverted")
        tx = FakePendingTransaction(
            self, TxHash(f"0x{next(self._hashes):064x}"), effect,
        )
        tx.gate = self.confirmation_gate
        self.pending.append(tx)
        return tx

    def _maybe_fail(self) -> None:
        if self.fail_reads is not None:
            raise self.fail_reads


def seeded_ledger() -> FakeLedger:
    """Three items: Lamp (Alice, 1 ETH), Chair (Bob, 0.5 ETH), Rug (Alice, 2 ETH)."""
    ledger = FakeLedger()
    ledger.add("Lamp", 1 * ETHER, ALICE)
    ledger.add("Chair", ETHER // 2, BOB)
    ledger.add("Rug", 2 * ETHER, ALICE)
    return ledger
