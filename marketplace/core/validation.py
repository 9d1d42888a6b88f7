"""Input Validation — pure checks applied before any ledger call.

Invariants:
    - Every check raises ValidationError (field-tagged) or returns a normalized value
    - Amounts are exact: ether text with more than 18 decimals is rejected, never truncated
    - Identities are returned lowercase; checksum casing is verified when mixed-case
    - Names are checked on their stripped form but kept exactly as typed

Design Decisions:
    - eth_utils for address syntax + ether/wei conversion: the ledger's own unit rules
    - Decimal parsing over float: "0.1" must map to exactly 10**17 wei
"""

from decimal import Decimal, InvalidOperation, localcontext

from eth_utils import (
    from_wei, is_address, is_checksum_address, is_checksum_formatted_address,
    to_wei,
)

from marketplace.core.domain_types import Identity, ItemId, MAX_UINT256, Wei
from marketplace.core.errors import ValidationError

ETHER_DECIMALS = 18


def is_valid_identity(address: object) -> bool:
    """Syntactic check: 0x + 40 hex chars, EIP-55 checksum if mixed-case."""
    if not isinstance(address, str) or not is_address(address):
        return False
    if is_checksum_formatted_address(address):
        return is_checksum_address(address)
    return True


def normalize_identity(address: str) -> Identity:
    """Lowercase an already-validated address."""
    return Identity(address.lower())


def validate_identity(address: str, field: str = "address") -> Identity:
    if not is_valid_identity(address):
        raise ValidationError(f"'{address}' is not a valid address", field)
    return normalize_identity(address)


def validate_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Item name cannot be empty", "name")
    return name


def validate_item_id(item_id: int) -> ItemId:
    # bool is an int subclass; reject it explicitly
    if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id < 1:
        raise ValidationError(f"'{item_id}' is not a valid item id", "item_id")
    return ItemId(item_id)


def parse_amount(text: str | Decimal, field: str = "price") -> Wei:
    """Parse an ether amount ("1.5") into a positive wei integer."""
    try:
        amount = Decimal(text.strip()) if isinstance(text, str) else Decimal(text)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"'{text}' is not a valid amount", field)
    if not amount.is_finite():
        raise ValidationError(f"'{text}' is not a valid amount", field)
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero", field)
    if not _is_whole_wei(amount):
        raise ValidationError(
            f"Amount has more than {ETHER_DECIMALS} decimal places", field,
        )
    try:
        wei = to_wei(amount, "ether")
    except ValueError:
        raise ValidationError("Amount exceeds the ledger maximum", field)
    if wei > MAX_UINT256:
        raise ValidationError("Amount exceeds the ledger maximum", field)
    return Wei(wei)


def format_amount(wei: int) -> str:
    """Format wei as an ether string, always with a fractional part ("2.0")."""
    ether = Decimal(from_wei(wei, "ether")).normalize()
    text = f"{ether:f}"
    return text if "." in text else f"{text}.0"


def _is_whole_wei(amount: Decimal) -> bool:
    # Precision wide enough that scaleb never rounds the coefficient
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(amount.as_tuple().digits))
        scaled = amount.scaleb(ETHER_DECIMALS)
        return scaled == scaled.to_integral_value()
