"""
Guards and money helpers shared by the entity factories.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID, uuid4

from funbookr.core.clock import utcnow
from funbookr.core.exceptions import DomainValidationError

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.1 don't drag binary noise along
    return Decimal(str(value))


def round_money(value) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def require_id(value: Optional[UUID], field: str) -> UUID:
    if value is None or value.int == 0:
        raise DomainValidationError(f"{field} is required")
    return value


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise DomainValidationError(f"{field} is required")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def generate_reference(prefix: str, length: int) -> str:
    """e.g. PAY20261019A1B2C3D4"""
    return f"{prefix}{utcnow():%Y%m%d}{uuid4().hex[:length].upper()}"
