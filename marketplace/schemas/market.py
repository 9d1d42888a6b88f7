"""Market Schemas — Pydantic models for the marketplace API boundary.

Invariants:
    - Amounts travel as strings in requests ("1.5") and wei as strings in responses
      (uint256 does not fit a JSON number safely)
    - ItemResponse.purchasable is computed for the identity active at response time

Design Decisions:
    - from_item()/from_receipt() classmethods keep routes free of mapping code
"""

from pydantic import BaseModel, Field, field_validator

from marketplace.core.models import Item, OperationReceipt
from marketplace.core.validation import format_amount


class ListItemRequest(BaseModel):
    """List a new item for sale."""
    name: str = Field(min_length=1, max_length=200)
    price: str = Field(min_length=1, max_length=80, description="Price in ether, e.g. '1.5'")

    @field_validator("name")
    @classmethod
    def reject_blank_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty or whitespace")
        return v


class PurchaseRequest(BaseModel):
    """Buy an item; price must match the ledger's price exactly."""
    price: str = Field(min_length=1, max_length=80)


class TransferRequest(BaseModel):
    """Hand an owned item to another identity."""
    to: str = Field(min_length=1, max_length=64)


class ItemResponse(BaseModel):
    id: int
    name: str
    price_wei: str
    price: str
    owner: str
    sold: bool
    purchasable: bool

    @classmethod
    def from_item(cls, item: Item, identity: str | None) -> "ItemResponse":
        return cls(
            id=item.id,
            name=item.name,
            price_wei=str(item.price),
            price=format_amount(item.price),
            owner=item.owner,
            sold=item.sold,
            purchasable=item.is_purchasable_by(identity),
        )


class IdentityResponse(BaseModel):
    identity: str | None
    connected: bool


class OperationResponse(BaseModel):
    operation: str
    tx_hash: str
    phase: str
    identity: str | None
    item_id: int | None = None
    block_number: int | None = None

    @classmethod
    def from_receipt(cls, receipt: OperationReceipt) -> "OperationResponse":
        return cls(
            operation=receipt.kind.value,
            tx_hash=receipt.tx_hash,
            phase=receipt.phase.value,
            identity=receipt.identity,
            item_id=receipt.item_id,
            block_number=receipt.block_number,
        )


class RefreshResponse(BaseModel):
    catalog_size: int
    owned_size: int
