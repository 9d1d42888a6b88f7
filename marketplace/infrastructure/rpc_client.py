"""JSON-RPC Client — wraps httpx.AsyncClient with JSON-RPC 2.0 framing and error mapping.

Invariants:
    - Transport failures (connect, timeout, non-2xx) raise LedgerRpcError
    - JSON-RPC error objects raise JsonRpcError carrying code + data
    - No retry: ledger-level failures are final for that call

Design Decisions:
    - Wrapper over raw client: isolates framing and error mapping from gateway logic
      (ADR: single responsibility)
    - Request ids from itertools.count: unique per client, cheap, no uuid needed
    - Optional injected httpx.AsyncClient: tests pass httpx.MockTransport
"""

import itertools
import logging
from typing import Any

import httpx

from marketplace.core.errors import ErrorContext, LedgerRpcError

logger = logging.getLogger(__name__)

# EIP-1193 / wallet error codes
USER_REJECTED_CODE = 4001
UNAUTHORIZED_CODE = 4100
EXECUTION_REVERTED_CODE = 3


class JsonRpcError(LedgerRpcError):
    """JSON-RPC error object returned by the node or wallet."""

    def __init__(
        self,
        method: str,
        rpc_code: int,
        rpc_message: str,
        data: Any = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{method} failed ({rpc_code}): {rpc_message}",
            rpc_code=rpc_code, context=context,
        )
        self.method = method
        self.rpc_message = rpc_message
        self.data = data

    @property
    def is_user_rejection(self) -> bool:
        return self.rpc_code in (USER_REJECTED_CODE, UNAUTHORIZED_CODE)

    @property
    def is_revert(self) -> bool:
        if self.rpc_code == EXECUTION_REVERTED_CODE:
            return True
        return "revert" in self.rpc_message.lower()


class JsonRpcClient:
    """Minimal async JSON-RPC 2.0 client over HTTP."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._ids = itertools.count(1)

    async def call(
        self, method: str, params: list | None = None,
        context: ErrorContext | None = None,
    ) -> Any:
        """Send one JSON-RPC request and return its `result` member."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.TimeoutException:
            raise LedgerRpcError(f"{method} timed out", context=context)
        except httpx.HTTPError as e:
            raise LedgerRpcError(f"{method} transport failure: {e}", context=context)

        if response.status_code >= 400:
            raise LedgerRpcError(
                f"{method} HTTP {response.status_code}", context=context,
            )
        try:
            body = response.json()
        except ValueError:
            raise LedgerRpcError(f"{method} returned non-JSON body", context=context)

        error = body.get("error")
        if error:
            logger.debug(
                "JSON-RPC error on %s: %s", method, error,
                extra={"error_code": error.get("code")},
            )
            raise JsonRpcError(
                method,
                int(error.get("code", 0)),
                str(error.get("message", "")),
                error.get("data"),
                context=context,
            )
        if "result" not in body:
            raise LedgerRpcError(f"{method} response missing result", context=context)
        return body["result"]

    async def health_check(self) -> bool:
        """Check endpoint reachability (for readiness checks)."""
        try:
            await self.call("eth_blockNumber")
            return True
        except LedgerRpcError as e:
            logger.error(f"RPC health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self._client.aclose()
