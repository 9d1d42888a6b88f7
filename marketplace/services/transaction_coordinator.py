"""Transaction Coordinator — submit → confirm → refresh protocol for list, purchase, transfer.

Invariants:
    - Validation happens before any network call; failures raise ValidationError
    - Gateway errors (NoSigner, Reverted, InvalidAddress, ...) propagate unchanged
    - A reverted or timed-out transaction triggers NO refresh (cache untouched)
    - On confirmed success the catalog is always refreshed; purchase and transfer
      also refresh holdings for the identity current at refresh time
    - A failed refresh after confirmation ends the operation UNSYNCED and raises
      RefreshFailedError carrying the confirmed receipt
    - Once submitted, an operation runs to confirmation or failure (no cancellation)

Design Decisions:
    - One generic _execute() parameterized by a submit callable: the protocol lives in one place
    - Full re-synchronization after every mutation over incremental patching:
      the ledger offers the client no incremental-update channel
    - Confirmation timeout is configurable (None = wait indefinitely)
    - Concurrent identical submissions are NOT deduplicated (each click is a transaction)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace

from marketplace.core.domain_types import (
    OperationKind, TransactionPhase,
)
from marketplace.core.errors import (
    ConfirmationTimeoutError, ErrorContext, MarketplaceError,
    RefreshFailedError, TransactionRevertedError,
)
from marketplace.core.ledger_protocols import LedgerGateway, PendingTransaction, Signer
from marketplace.core.models import OperationReceipt, TransactionReceipt
from marketplace.core.operation_state import OperationState
from marketplace.core.validation import (
    parse_amount, validate_identity, validate_item_id, validate_name,
)
from marketplace.services.catalog_cache import CatalogCache
from marketplace.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

Submit = Callable[[Signer | None], Awaitable[PendingTransaction]]


class TransactionCoordinator:
    """Drives mutating operations through the ledger and re-synchronizes the cache."""

    def __init__(
        self,
        gateway: LedgerGateway,
        cache: CatalogCache,
        sessions: SessionManager,
        confirmation_timeout: float | None = 120.0,
    ):
        self._gateway = gateway
        self._cache = cache
        self._sessions = sessions
        self.confirmation_timeout = confirmation_timeout
        self._active: dict[int, OperationState] = {}

    @property
    def in_flight(self) -> tuple[OperationState, ...]:
        """Operations that have not reached a terminal phase, oldest first."""
        return tuple(self._active.values())

    async def list_item(self, name: str, price: str) -> OperationReceipt:
        state = self._begin(OperationKind.LIST)
        try:
            clean_name = validate_name(name)
            wei = parse_amount(price, "price")
        except MarketplaceError:
            self._finish(state, TransactionPhase.FAILED)
            raise
        return await self._execute(
            state,
            lambda signer: self._gateway.submit_listing(signer, clean_name, wei),
        )

    async def purchase(self, item_id: int, price: str) -> OperationReceipt:
        state = self._begin(OperationKind.PURCHASE)
        try:
            item = validate_item_id(item_id)
            wei = parse_amount(price, "price")
        except MarketplaceError:
            self._finish(state, TransactionPhase.FAILED)
            raise
        state.item_id = item
        return await self._execute(
            state,
            lambda signer: self._gateway.submit_purchase(signer, item, wei),
        )

    async def transfer(self, item_id: int, to: str) -> OperationReceipt:
        state = self._begin(OperationKind.TRANSFER)
        try:
            item = validate_item_id(item_id)
            recipient = validate_identity(to, "to")
        except MarketplaceError:
            self._finish(state, TransactionPhase.FAILED)
            raise
        state.item_id = item
        return await self._execute(
            state,
            lambda signer: self._gateway.submit_transfer(signer, item, recipient),
        )

    async def resync(self) -> None:
        """Full refresh of catalog and holdings for the current identity."""
        await self._cache.refresh_all(self._sessions.identity)

    # ─── Protocol ───────────────────────────────────────────────

    def _begin(self, kind: OperationKind) -> OperationState:
        state = OperationState(kind)
        self._active[id(state)] = state
        self._advance(state, TransactionPhase.VALIDATING)
        return state

    async def _execute(self, state: OperationState, submit: Submit) -> OperationReceipt:
        try:
            return await self._submit_confirm_refresh(state, submit)
        finally:
            self._active.pop(id(state), None)

    async def _submit_confirm_refresh(
        self, state: OperationState, submit: Submit,
    ) -> OperationReceipt:
        session = self._sessions.session
        ctx = ErrorContext(
            identity=session.identity, operation=state.kind.value,
            item_id=state.item_id,
        )

        # Submit
        try:
            pending = await submit(session.signer)
        except TransactionRevertedError:
            self._finish(state, TransactionPhase.REVERTED)
            raise
        except MarketplaceError:
            self._finish(state, TransactionPhase.FAILED)
            raise
        state.tx_hash = pending.tx_hash
        ctx.tx_hash = pending.tx_hash
        self._advance(state, TransactionPhase.SUBMITTED)

        # Confirm
        try:
            receipt = await self._confirm(pending, ctx)
        except ConfirmationTimeoutError:
            self._finish(state, TransactionPhase.TIMED_OUT)
            raise
        except MarketplaceError:
            self._finish(state, TransactionPhase.FAILED)
            raise
        if not receipt.succeeded:
            self._finish(state, TransactionPhase.REVERTED)
            raise TransactionRevertedError(tx_hash=receipt.tx_hash, context=ctx)
        self._advance(state, TransactionPhase.CONFIRMED)

        # Refresh
        outcome = OperationReceipt(
            kind=state.kind,
            tx_hash=receipt.tx_hash,
            identity=session.identity,
            item_id=state.item_id,
            block_number=receipt.block_number,
        )
        try:
            await self._refresh(state.kind)
        except MarketplaceError as e:
            logger.warning(
                f"Refresh after confirmation failed: {e.message}",
                extra={"tx_hash": receipt.tx_hash, "operation": ctx.operation},
            )
            self._finish(state, TransactionPhase.UNSYNCED)
            raise RefreshFailedError(
                replace(outcome, phase=TransactionPhase.UNSYNCED), e, context=ctx,
            )
        self._finish(state, TransactionPhase.REFRESHED)
        return outcome

    async def _confirm(
        self, pending: PendingTransaction, ctx: ErrorContext,
    ) -> TransactionReceipt:
        if self.confirmation_timeout is None:
            return await pending.wait()
        try:
            return await asyncio.wait_for(pending.wait(), self.confirmation_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Confirmation timed out; transaction may still be included",
                extra={"tx_hash": pending.tx_hash, "operation": ctx.operation},
            )
            raise ConfirmationTimeoutError(
                pending.tx_hash, self.confirmation_timeout, context=ctx,
            )

    async def _refresh(self, kind: OperationKind) -> None:
        if kind.refreshes_owned:
            await self._cache.refresh_all(self._sessions.identity)
        else:
            await self._cache.refresh_catalog()

    def _advance(self, state: OperationState, phase: TransactionPhase) -> None:
        state.advance(phase)
        logger.info(
            f"{state.kind.value} -> {phase.value}",
            extra={
                "operation": state.kind.value, "phase": phase.value,
                "tx_hash": state.tx_hash, "item_id": state.item_id,
            },
        )

    def _finish(self, state: OperationState, phase: TransactionPhase) -> None:
        self._advance(state, phase)
        self._active.pop(id(state), None)
