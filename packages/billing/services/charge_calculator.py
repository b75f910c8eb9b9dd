"""
Charge computation: base fee plus metered usage billed in fixed-size packs.

Pure functions, no I/O. Amounts are integer minor currency units.
"""

from typing import Optional

from common.core.config import settings
from common.core.constants import GIGABYTE
from packages.billing.exceptions import ValidationError
from packages.billing.models.domain.invoice import ChargeQuote


def required_packs(used_bytes: int, free_allowance_bytes: int, pack_size_bytes: int) -> int:
    """ceil(max(0, used - free) / pack_size), computed in integers."""
    if pack_size_bytes <= 0:
        raise ValidationError("Pack size must be positive")
    if used_bytes < 0 or free_allowance_bytes < 0:
        raise ValidationError("Usage and free allowance cannot be negative")
    overage = max(0, used_bytes - free_allowance_bytes)
    return -(-overage // pack_size_bytes)


def describe_charge(packs: int) -> str:
    if packs == 0:
        return "Monthly Subscription"
    return f"Monthly Subscription + {packs} storage pack{'s' if packs != 1 else ''}"


def calculate_charge(
    used_bytes: int,
    base_fee: int,
    pack_fee: int,
    free_allowance_bytes: int,
    pack_size_bytes: int,
    currency: str,
    purchased_packs: int = 0,
) -> ChargeQuote:
    """
    Quote one billing period.

    The billed pack count is the larger of the purchased packs and the packs
    measured usage requires, so usage is never under-billed.
    """
    if base_fee < 0 or pack_fee < 0:
        raise ValidationError("Fees cannot be negative")
    if purchased_packs < 0:
        raise ValidationError("Storage pack count cannot be negative")

    needed = required_packs(used_bytes, free_allowance_bytes, pack_size_bytes)
    packs = max(needed, purchased_packs)
    usage_charge = packs * pack_fee

    return ChargeQuote(
        base_amount=base_fee,
        usage_packs=packs,
        required_packs=needed,
        pack_amount=pack_fee,
        usage_charge=usage_charge,
        total=base_fee + usage_charge,
        currency=currency,
        description=describe_charge(packs),
    )


class ChargeCalculator:
    """calculate_charge bound to the configured price list."""

    def __init__(
        self,
        base_fee: Optional[int] = None,
        pack_fee: Optional[int] = None,
        free_allowance_gb: Optional[int] = None,
        pack_size_gb: Optional[int] = None,
        currency: Optional[str] = None,
    ):
        self.base_fee = settings.billing_base_fee_cents if base_fee is None else base_fee
        self.pack_fee = settings.billing_pack_fee_cents if pack_fee is None else pack_fee
        self.free_allowance_gb = (
            settings.billing_free_allowance_gb
            if free_allowance_gb is None
            else free_allowance_gb
        )
        self.pack_size_gb = (
            settings.billing_pack_size_gb if pack_size_gb is None else pack_size_gb
        )
        self.currency = currency or settings.billing_currency

    def calculate(self, used_bytes: int, purchased_packs: int = 0) -> ChargeQuote:
        return calculate_charge(
            used_bytes=used_bytes,
            base_fee=self.base_fee,
            pack_fee=self.pack_fee,
            free_allowance_bytes=self.free_allowance_gb * GIGABYTE,
            pack_size_bytes=self.pack_size_gb * GIGABYTE,
            currency=self.currency,
            purchased_packs=purchased_packs,
        )

    def storage_limit_gb(self, packs: int) -> int:
        """Allowance granted by a pack count."""
        return self.free_allowance_gb + packs * self.pack_size_gb
