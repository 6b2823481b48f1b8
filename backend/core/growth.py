"""Monthly compounding of annual return and appreciation rates."""

from __future__ import annotations

from typing import Mapping


def monthly_rate(annual_rate: float) -> float:
    """Monthly rate that compounds to ``annual_rate`` over twelve months."""
    return (1.0 + annual_rate) ** (1.0 / 12.0) - 1.0


def grow(balance: float, annual_rate: float) -> float:
    """One month of growth. Negative rates depreciate the balance."""
    if annual_rate == 0:
        return balance
    return balance * (1.0 + monthly_rate(annual_rate))


def growth_rate_for(
    account_type: str,
    investment_returns: Mapping[str, float],
    asset_appreciation: Mapping[str, float],
) -> float:
    # investment returns take precedence over appreciation for the same key
    if account_type in investment_returns:
        return investment_returns[account_type]
    return asset_appreciation.get(account_type, 0.0)
