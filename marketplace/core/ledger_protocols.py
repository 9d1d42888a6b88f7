"""Boundary Protocols — contracts between the sync core and the outside world.

Invariants:
    - core/ never imports infrastructure/; dependency arrows point inward
    - Ledger and wallet access go through these Protocol types only
    - Implementations provided by infrastructure/ via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Signer passed explicitly to every mutating call: the gateway holds no session state
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from marketplace.core.domain_types import Identity, ItemId, TxHash, Wei
from marketplace.core.models import Item, TransactionReceipt
from marketplace.core.subscriptions import Subscription

IdentityHandler = Callable[[Identity | None], Awaitable[None]]


class Signer(Protocol):
    """Signer binding — authorizes mutating calls for one identity."""
    @property
    def identity(self) -> Identity: ...
    async def send_transaction(self, tx: dict) -> TxHash: ...


class PendingTransaction(Protocol):
    """Handle for a submitted, not-yet-confirmed transaction."""
    @property
    def tx_hash(self) -> TxHash: ...
    async def wait(self) -> TransactionReceipt: ...


class SigningAgent(Protocol):
    """Contract for the wallet environment — implemented in infrastructure/"""
    async def request_authorization(self) -> list[Identity]: ...
    async def current_signer(self) -> Signer | None: ...
    def subscribe(self, handler: IdentityHandler) -> Subscription: ...


class LedgerGateway(Protocol):
    """Contract for the marketplace contract surface — implemented in infrastructure/"""
    async def get_item_count(self) -> int: ...
    async def get_item(self, item_id: ItemId) -> Item: ...
    async def get_owned_item_ids(self, owner: Identity) -> list[ItemId]: ...
    async def submit_listing(
        self, signer: Signer | None, name: str, price: Wei,
    ) -> PendingTransaction: ...
    async def submit_purchase(
        self, signer: Signer | None, item_id: ItemId, value: Wei,
    ) -> PendingTransaction: ...
    async def submit_transfer(
        self, signer: Signer | None, item_id: ItemId, to: str,
    ) -> PendingTransaction: ...
