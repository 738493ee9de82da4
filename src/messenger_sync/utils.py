"""Utility functions for the Messenger synchronization engine."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation, localcontext

from web3 import Web3

from .constants import DISPLAY_UNIT, ETHER_DECIMALS, MILLISECONDS_PER_SECOND
from .exceptions import AmountFormatError, ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Last whole second a datetime can represent (9999-12-31T23:59:59Z)
MAX_TIMESTAMP_SECONDS = (datetime.max.replace(tzinfo=timezone.utc) - EPOCH) // timedelta(seconds=1)

MAX_UINT256 = 2**256 - 1


def normalise_timestamp(seconds: int) -> datetime:
    """Convert an on-chain timestamp in whole seconds to a UTC datetime."""
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        raise ValidationError("Timestamp must be an integer", field="timestamp", value=seconds)
    if seconds < 0:
        raise ValidationError("Timestamp cannot be negative", field="timestamp", value=seconds)
    if seconds > MAX_TIMESTAMP_SECONDS:
        raise ValidationError("Timestamp is out of range", field="timestamp", value=seconds)

    milliseconds = seconds * MILLISECONDS_PER_SECOND
    return EPOCH + timedelta(milliseconds=milliseconds)


def to_epoch_millis(instant: datetime) -> int:
    """Return milliseconds since epoch for an aware datetime."""
    return (instant - EPOCH) // timedelta(milliseconds=1)


def ether_to_wei(amount: str) -> int:
    """Convert a decimal ether string into an integer wei amount.

    Raises:
        AmountFormatError: If ``amount`` is not a non-negative decimal string
            with at most 18 fractional digits.
    """
    if not isinstance(amount, str):
        raise AmountFormatError("Amount must be a decimal string", value=amount)

    text = amount.strip()
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise AmountFormatError(f"Invalid amount: {amount!r}", value=amount) from None

    if not value.is_finite():
        raise AmountFormatError(f"Invalid amount: {amount!r}", value=amount)

    if value < 0:
        raise AmountFormatError("Amount cannot be negative", value=amount)

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(ETHER_DECIMALS)
        if scaled != scaled.to_integral_value():
            raise AmountFormatError(
                f"Amount has more than {ETHER_DECIMALS} decimal places", value=amount
            )

    try:
        wei = int(Web3.to_wei(value, DISPLAY_UNIT))
    except ValueError as exc:
        raise AmountFormatError(
            "Amount is out of range", value=amount, details={"error": str(exc)}
        ) from exc

    if wei > MAX_UINT256:
        raise AmountFormatError("Amount exceeds uint256 maximum", value=amount)

    return wei


def same_address(left: str | None, right: str | None) -> bool:
    """Compare two addresses case-insensitively; ``None`` never matches."""
    if left is None or right is None:
        return False
    return left.lower() == right.lower()


def to_checksum(address: str, field: str = "address") -> str:
    """Checksum an address, raising ``ValidationError`` if it is malformed."""
    try:
        return Web3.to_checksum_address(address)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Invalid address: {address!r}",
            field=field,
            value=address,
            details={"error": str(exc)},
        ) from exc
