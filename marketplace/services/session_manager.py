"""Session Manager — connects to the signing agent and tracks the active identity.

Invariants:
    - The session is an immutable MarketSession value, replaced wholesale on change
    - The signer binding is re-derived BEFORE dependents are notified of a change
    - A signer whose identity differs from the reported identity is never bound
    - Only the newest identity change is applied when changes overlap; a report
      of the already-applied identity cancels any change still in flight
    - A failed signer lookup leaves the session untouched and propagates, so the
      agent retries the same change

Design Decisions:
    - Explicit session object over process-wide globals: components read
      manager.session at the moment they need it
    - Subscription handles with unsubscribe() over implicit global listeners
    - Dependent handler failures are logged and do not stop delivery to the
      remaining handlers (each dependent reports its own failures)
"""

import logging

from marketplace.core.domain_types import Identity
from marketplace.core.errors import (
    AuthorizationDeniedError, NoAgentError, NoSignerError,
)
from marketplace.core.ledger_protocols import SigningAgent, Signer
from marketplace.core.models import MarketSession
from marketplace.core.subscriptions import HandlerRegistry, Subscription
from marketplace.core.validation import normalize_identity

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the current MarketSession and fans out identity changes."""

    def __init__(self, agent: SigningAgent | None):
        self._agent = agent
        self._session = MarketSession()
        self._handlers = HandlerRegistry()
        self._agent_subscription: Subscription | None = None
        self._change_seq = 0

    @property
    def session(self) -> MarketSession:
        return self._session

    @property
    def identity(self) -> Identity | None:
        return self._session.identity

    async def connect(self) -> MarketSession:
        """Authorize with the agent and bind a signer for the first identity."""
        if self._agent is None:
            raise NoAgentError()
        identities = await self._agent.request_authorization()
        if not identities:
            raise AuthorizationDeniedError()
        identity = normalize_identity(identities[0])
        signer = _matching(await self._agent.current_signer(), identity)
        if signer is None:
            raise NoSignerError()

        self._change_seq += 1
        self._session = MarketSession(
            identity=identity, signer=signer,
            generation=self._session.generation + 1,
        )
        if self._agent_subscription is None:
            self._agent_subscription = self._agent.subscribe(self._on_agent_identity)
        logger.info("Session connected", extra={"identity": identity})
        return self._session

    def subscribe(self, handler) -> Subscription:
        """Register `async handler(session)`, called after each identity change."""
        return self._handlers.register(handler)

    async def disconnect(self) -> None:
        if self._agent_subscription is not None:
            self._agent_subscription.unsubscribe()
            self._agent_subscription = None
        self._change_seq += 1
        self._session = MarketSession(generation=self._session.generation + 1)

    async def _on_agent_identity(self, reported: Identity | None) -> None:
        identity = normalize_identity(reported) if reported else None
        # Every report supersedes any change still resolving its signer,
        # including a report that returns to the applied identity
        self._change_seq += 1
        seq = self._change_seq
        if identity == self._session.identity:
            return

        signer = None
        if identity is not None:
            signer = _matching(await self._agent.current_signer(), identity)
        if seq != self._change_seq:
            logger.debug("Identity change superseded", extra={"identity": identity})
            return

        self._session = MarketSession(
            identity=identity, signer=signer,
            generation=self._session.generation + 1,
        )
        logger.info(
            "Identity changed",
            extra={"identity": identity, "seq": self._session.generation},
        )
        await self._notify(self._session)

    async def _notify(self, session: MarketSession) -> None:
        for handler in self._handlers.snapshot():
            try:
                await handler(session)
            except Exception as e:
                logger.error(
                    f"Identity-change handler failed: {e}", exc_info=True,
                    extra={"identity": session.identity},
                )


def _matching(signer: Signer | None, identity: Identity) -> Signer | None:
    if signer is None:
        return None
    if signer.identity.lower() != identity:
        logger.warning(
            "Signer identity does not match active identity",
            extra={"identity": identity},
        )
        return None
    return signer
