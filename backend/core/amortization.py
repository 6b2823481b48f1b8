"""Fixed-payment loan arithmetic used for every debt the simulator carries."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from backend.core.errors import ConfigurationError

# Residual balances below half a cent are rounding noise from the annuity formula.
PAYOFF_TOLERANCE = 0.005

PERIODS_PER_YEAR = {
    "weekly": 52,
    "bi-weekly": 26,
    "biweekly": 26,
    "semi-monthly": 24,
    "monthly": 12,
    "quarterly": 4,
    "annually": 1,
    "annual": 1,
}


@dataclass(frozen=True)
class AmortizationStep:
    principal_paid: float
    interest_paid: float
    new_balance: float
    paid_off: bool

    @property
    def total_paid(self) -> float:
        return self.principal_paid + self.interest_paid


def periods_per_year(frequency: Optional[str]) -> int:
    """Payment periods per year; unknown or missing frequencies count as monthly."""
    if not frequency:
        return 12
    return PERIODS_PER_YEAR.get(frequency.strip().lower(), 12)


def to_monthly_amount(amount: float, frequency: Optional[str]) -> float:
    """Express a per-period amount as its average monthly equivalent."""
    return amount * periods_per_year(frequency) / 12.0


def scheduled_payment(
    principal: float,
    annual_rate: float,
    term_months: int,
    frequency: str = "monthly",
) -> float:
    """Per-period payment that retires ``principal`` over ``term_months``.

    Standard annuity formula ``P * r / (1 - (1 + r) ** -n)`` with ``r`` the
    periodic rate and ``n`` the number of periods in the term. A zero rate
    degenerates to equal principal instalments.
    """
    if term_months <= 0:
        raise ConfigurationError.single("term_months", "invalid_term", "term_months must be positive")
    if principal <= 0:
        return 0.0

    per_year = periods_per_year(frequency)
    periods = math.ceil(term_months * per_year / 12.0)
    rate = annual_rate / per_year
    if rate == 0:
        return principal / periods
    return principal * rate / (1 - (1 + rate) ** -periods)


def apply_month(
    balance: float,
    annual_rate: float,
    payment: float,
    extra_payment: float = 0.0,
) -> AmortizationStep:
    """Advance a debt by one month of interest and payments.

    ``payment`` is the monthly-equivalent scheduled payment. Principal is
    clamped so the balance never drops below zero.
    """
    if balance <= 0:
        return AmortizationStep(principal_paid=0.0, interest_paid=0.0, new_balance=0.0, paid_off=True)

    interest = balance * annual_rate / 12.0
    principal = payment - interest + extra_payment
    new_balance = balance - principal

    if new_balance <= PAYOFF_TOLERANCE:
        return AmortizationStep(principal_paid=balance, interest_paid=interest, new_balance=0.0, paid_off=True)

    return AmortizationStep(
        principal_paid=principal,
        interest_paid=interest,
        new_balance=new_balance,
        paid_off=False,
    )
