"""Contract ABI — the marketplace contract's fixed procedure surface.

Invariants:
    - Calldata = 4-byte selector of the canonical signature + ABI-encoded arguments
    - Decoded addresses are lowercased (same normalization as Identity)
    - items(uint256) returns (id, name, itemPrice, owner, isSold) in that order

Design Decisions:
    - eth-abi + eth-utils instead of a full web3 stack: encoding is all we need
    - One ContractFunction per procedure, declared as module constants
"""

from dataclasses import dataclass
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector

from marketplace.core.domain_types import Identity, ItemId, Wei
from marketplace.core.models import Item

# Error(string) — standard Solidity revert payload
_REVERT_SELECTOR = bytes.fromhex("08c379a0")


@dataclass(frozen=True)
class ContractFunction:
    """One contract procedure: name plus input/output ABI types."""
    name: str
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode_call(self, *args: Any) -> str:
        """Build hex calldata for this procedure."""
        if len(args) != len(self.inputs):
            raise TypeError(
                f"{self.signature} takes {len(self.inputs)} arguments, got {len(args)}",
            )
        return encode_hex(self.selector + encode(list(self.inputs), list(args)))

    def decode_result(self, data: str) -> tuple:
        return decode(list(self.outputs), decode_hex(data))


ITEM_COUNT = ContractFunction("itemCount", outputs=("uint256",))
ITEMS = ContractFunction(
    "items", inputs=("uint256",),
    outputs=("uint256", "string", "uint256", "address", "bool"),
)
GET_ITEMS_BY_OWNER = ContractFunction(
    "getItemsByOwner", inputs=("address",), outputs=("uint256[]",),
)
LIST_ITEM = ContractFunction("listItem", inputs=("string", "uint256"))
BUY_ITEM = ContractFunction("buyItem", inputs=("uint256",))
TRANSFER_ITEM = ContractFunction("transferItem", inputs=("uint256", "address"))


def decode_item(data: str) -> Item:
    """Decode an items(uint256) result into an Item snapshot."""
    item_id, name, price, owner, sold = ITEMS.decode_result(data)
    return Item(
        id=ItemId(item_id),
        name=name,
        price=Wei(price),
        owner=Identity(owner.lower()),
        sold=sold,
    )


def decode_revert_reason(data: Any) -> str | None:
    """Extract the Error(string) message from revert data, if present."""
    if isinstance(data, dict):
        data = data.get("data")
    if not isinstance(data, str) or not data.startswith("0x"):
        return None
    raw = decode_hex(data)
    if not raw.startswith(_REVERT_SELECTOR):
        return None
    try:
        (reason,) = decode(["string"], raw[4:])
    except DecodingError:
        return None
    return reason
