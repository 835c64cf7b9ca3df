"""GEX premium calculator.

Pure and deterministic: no I/O, no clock. Amounts are carried unrounded and
only rounded to cents by ``to_cents`` when displayed or charged.

    insured  = declared_value_usd * exchange_rate
    variable = insured * variable_rate
    total    = variable + fixed_fee_mxn
"""

import math
import os
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from forwarding.errors import InvalidInput

DEFAULT_VARIABLE_RATE = 0.05
DEFAULT_FIXED_FEE_MXN = 625.00


@dataclass(frozen=True)
class FeeSchedule:
    variable_rate: float = DEFAULT_VARIABLE_RATE
    fixed_fee_mxn: float = DEFAULT_FIXED_FEE_MXN

    @classmethod
    def from_env(cls) -> "FeeSchedule":
        return cls(
            variable_rate=float(os.getenv("GEX_VARIABLE_RATE", DEFAULT_VARIABLE_RATE)),
            fixed_fee_mxn=float(os.getenv("GEX_FIXED_FEE_MXN", DEFAULT_FIXED_FEE_MXN)),
        )


DEFAULT_FEE_SCHEDULE = FeeSchedule()

_current_schedule: FeeSchedule | None = None


def get_fee_schedule() -> FeeSchedule:
    global _current_schedule
    if _current_schedule is None:
        _current_schedule = FeeSchedule.from_env()
    return _current_schedule


def set_fee_schedule(schedule: FeeSchedule) -> None:
    global _current_schedule
    _current_schedule = schedule


def reset_fee_schedule() -> None:
    global _current_schedule
    _current_schedule = None


def to_cents(amount: float) -> float:
    """Round half-up to two decimals."""
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PremiumBreakdown:
    insured_value_mxn: float
    variable_fee_mxn: float
    fixed_fee_mxn: float
    total_cost_mxn: float

    def rounded(self) -> "PremiumBreakdown":
        return PremiumBreakdown(
            insured_value_mxn=to_cents(self.insured_value_mxn),
            variable_fee_mxn=to_cents(self.variable_fee_mxn),
            fixed_fee_mxn=to_cents(self.fixed_fee_mxn),
            total_cost_mxn=to_cents(self.total_cost_mxn),
        )


def is_positive_amount(value: float | None) -> bool:
    """True for a finite number above zero. None, NaN and infinities are not amounts."""
    return value is not None and math.isfinite(value) and value > 0


def quote(
    declared_value_usd: float,
    exchange_rate: float,
    fee_schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> PremiumBreakdown:
    """Premium for protecting ``declared_value_usd`` at ``exchange_rate`` MXN per USD."""
    errors = {}
    if not is_positive_amount(declared_value_usd):
        errors["declared_value_usd"] = ["Declared value must be greater than zero"]
    if not is_positive_amount(exchange_rate):
        errors["exchange_rate"] = ["Exchange rate must be greater than zero"]
    if errors:
        raise InvalidInput(errors)

    insured = declared_value_usd * exchange_rate
    variable = insured * fee_schedule.variable_rate
    return PremiumBreakdown(
        insured_value_mxn=insured,
        variable_fee_mxn=variable,
        fixed_fee_mxn=fee_schedule.fixed_fee_mxn,
        total_cost_mxn=variable + fee_schedule.fixed_fee_mxn,
    )
