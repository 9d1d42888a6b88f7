"""Market Routes — catalog, holdings, identity, and mutating operations.

Invariants:
    - Mutating routes return only after confirm + refresh (OperationResponse.phase == "refreshed")
    - Failures surface as MarketplaceError envelopes via the global handler; the
      cache is left at its last successful refresh
    - The identity stream emits one SSE event per identity change, after resync

Design Decisions:
    - MarketplaceClient injected via Depends(get_client): tests override it
    - SSE identity stream mirrors the wallet's accountsChanged event for browser clients
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from marketplace.schemas.market import (
    IdentityResponse, ItemResponse, ListItemRequest, OperationResponse,
    PurchaseRequest, RefreshResponse, TransferRequest,
)
from marketplace.services.marketplace_client import IdentityEvent, MarketplaceClient
from marketplace.services.runtime import get_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/market", tags=["market"])

# ADR: SSE headers prevent proxy/browser buffering of streamed events.
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def _identity_response(client: MarketplaceClient) -> IdentityResponse:
    return IdentityResponse(
        identity=client.identity, connected=client.session.is_connected,
    )


@router.get("/identity", response_model=IdentityResponse)
async def get_identity(client: MarketplaceClient = Depends(get_client)):
    return _identity_response(client)


@router.post("/connect", response_model=IdentityResponse)
async def connect(client: MarketplaceClient = Depends(get_client)):
    """Request wallet authorization and run the initial full refresh."""
    await client.connect()
    return _identity_response(client)


@router.get("/items", response_model=list[ItemResponse])
async def list_catalog(client: MarketplaceClient = Depends(get_client)):
    identity = client.identity
    return [ItemResponse.from_item(item, identity) for item in client.catalog]


@router.get("/owned", response_model=list[ItemResponse])
async def list_owned(client: MarketplaceClient = Depends(get_client)):
    identity = client.identity
    return [ItemResponse.from_item(item, identity) for item in client.owned]


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(client: MarketplaceClient = Depends(get_client)):
    """Explicit full re-synchronization with the ledger."""
    await client.refresh()
    return RefreshResponse(
        catalog_size=len(client.catalog), owned_size=len(client.owned),
    )


@router.post(
    "/items", response_model=OperationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def list_item(
    body: ListItemRequest, client: MarketplaceClient = Depends(get_client),
):
    receipt = await client.list_item(body.name, body.price)
    return OperationResponse.from_receipt(receipt)


@router.post("/items/{item_id}/purchase", response_model=OperationResponse)
async def purchase_item(
    item_id: int, body: PurchaseRequest,
    client: MarketplaceClient = Depends(get_client),
):
    receipt = await client.purchase(item_id, body.price)
    return OperationResponse.from_receipt(receipt)


@router.post("/items/{item_id}/transfer", response_model=OperationResponse)
async def transfer_item(
    item_id: int, body: TransferRequest,
    client: MarketplaceClient = Depends(get_client),
):
    receipt = await client.transfer(item_id, body.to)
    return OperationResponse.from_receipt(receipt)


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def identity_event(event: IdentityEvent) -> dict:
    if event.error is not None:
        return event.error.to_sse_event()
    return {
        "type": "identity_changed",
        "data": {"identity": event.identity, "generation": event.generation},
    }


@router.get("/identity/stream")
async def stream_identity(client: MarketplaceClient = Depends(get_client)):
    """SSE stream of identity changes; first event is the current identity."""

    async def event_generator():
        yield sse_line({
            "type": "identity",
            "data": {"identity": client.identity},
        })
        try:
            async for event in client.identity_changes():
                yield sse_line(identity_event(event))
        except asyncio.CancelledError:
            logger.info("Client disconnected from identity stream")
            return

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
