"""Progressive income tax under a bracket schedule."""

from __future__ import annotations

from typing import Sequence

from backend.core.errors import ConfigurationError
from backend.schemas.projection import TaxBracket


def validate_brackets(brackets: Sequence[TaxBracket], field: str = "tax_brackets") -> None:
    """Raise ConfigurationError unless the schedule is usable.

    A usable schedule is non-empty, has strictly ascending ceilings and ends
    with exactly one unbounded bracket (``up_to_income == 0``).
    """
    if not brackets:
        raise ConfigurationError.single(field, "invalid_tax_brackets", "at least one bracket is required")

    unbounded = [index for index, bracket in enumerate(brackets) if bracket.up_to_income == 0]
    if len(unbounded) != 1:
        raise ConfigurationError.single(
            field,
            "invalid_tax_brackets",
            f"expected exactly one unbounded bracket (up_to_income == 0), found {len(unbounded)}",
        )
    if unbounded[0] != len(brackets) - 1:
        raise ConfigurationError.single(field, "invalid_tax_brackets", "the unbounded bracket must be last")

    previous = 0.0
    for index, bracket in enumerate(brackets[:-1]):
        if bracket.up_to_income <= previous:
            raise ConfigurationError.single(
                f"{field}[{index}]",
                "invalid_tax_brackets",
                "bracket ceilings must be sorted in strictly ascending order",
            )
        previous = bracket.up_to_income


def compute_tax(annual_income: float, brackets: Sequence[TaxBracket]) -> float:
    """Tax owed on ``annual_income``, each slice taxed at its own bracket's rate.

    ``brackets`` must already have passed ``validate_brackets``; the request
    validator checks both schedules once before a run starts.
    """
    if annual_income <= 0:
        return 0.0

    total = 0.0
    floor = 0.0
    for bracket in brackets:
        ceiling = bracket.up_to_income if bracket.up_to_income > 0 else annual_income
        if annual_income <= floor:
            break
        taxable = min(annual_income, ceiling) - floor
        if taxable > 0:
            total += taxable * bracket.rate
        floor = ceiling
    return total


def compute_income_tax(
    annual_income: float,
    federal: Sequence[TaxBracket],
    provincial: Sequence[TaxBracket],
) -> float:
    """Federal and provincial tax computed independently and summed."""
    return compute_tax(annual_income, federal) + compute_tax(annual_income, provincial)
