from __future__ import annotations

import datetime as dt
from typing import Iterable, List, Mapping, Sequence

from backend.core.amortization import to_monthly_amount
from backend.core.errors import ConfigIssue, ConfigurationError
from backend.core.events import add_months
from backend.core.tax import validate_brackets
from backend.schemas.projection import (
    AccountInput,
    DebtInput,
    ExtraDebtPaymentEvent,
    ProjectionConfig,
)

MIN_HORIZON_YEARS = 1
MAX_HORIZON_YEARS = 30
ALLOCATION_TOLERANCE = 1e-9


def horizon_end(start_date: dt.date, years: int) -> dt.date:
    return add_months(start_date, years * 12)


def _check_rate(issues: List[ConfigIssue], field: str, rate: float) -> None:
    if rate <= -1:
        issues.append(ConfigIssue(field, "invalid_rate", f"rate must be greater than -1, got {rate}"))


def _check_rate_map(issues: List[ConfigIssue], field: str, rates: Mapping[str, float]) -> None:
    for key, rate in rates.items():
        _check_rate(issues, f"{field}.{key}", rate)


def _check_brackets(issues: List[ConfigIssue], field: str, config: ProjectionConfig) -> None:
    try:
        validate_brackets(getattr(config, field), f"config.{field}")
    except ConfigurationError as exc:
        issues.extend(exc.issues)


def _check_accounts(
    issues: List[ConfigIssue],
    accounts: Sequence[AccountInput],
    debts: Sequence[DebtInput],
) -> None:
    seen = set()
    for label, items in (("accounts", accounts), ("debts", debts)):
        for index, item in enumerate(items):
            if item.id in seen:
                issues.append(
                    ConfigIssue(f"{label}[{index}].id", "duplicate_account_id", f"account id {item.id!r} is used twice")
                )
            seen.add(item.id)

    for index, debt in enumerate(debts):
        if debt.payment_amount is None and (debt.term_months is None or debt.term_months <= 0):
            issues.append(
                ConfigIssue(
                    f"debts[{index}]",
                    "missing_payment_terms",
                    "a debt needs either payment_amount or a positive term_months",
                )
            )


def _check_events(
    issues: List[ConfigIssue],
    config: ProjectionConfig,
    debt_ids: Iterable[str],
    start_date: dt.date,
    end_date: dt.date,
) -> None:
    debt_ids = set(debt_ids)
    for index, event in enumerate(config.events):
        field = f"config.events[{index}]"
        if not start_date <= event.date <= end_date:
            issues.append(
                ConfigIssue(
                    f"{field}.date",
                    "event_out_of_range",
                    f"event {event.id!r} on {event.date.isoformat()} is outside "
                    f"{start_date.isoformat()}..{end_date.isoformat()}",
                )
            )
        if event.is_recurring and event.recurrence_frequency is None:
            issues.append(
                ConfigIssue(
                    f"{field}.recurrence_frequency",
                    "missing_recurrence_frequency",
                    f"recurring event {event.id!r} needs a recurrence_frequency",
                )
            )
        if event.recurrence_end_date is not None and not start_date <= event.recurrence_end_date <= end_date:
            issues.append(
                ConfigIssue(
                    f"{field}.recurrence_end_date",
                    "event_out_of_range",
                    f"recurrence end {event.recurrence_end_date.isoformat()} is outside the horizon",
                )
            )
        if isinstance(event, ExtraDebtPaymentEvent) and event.parameters.account_id not in debt_ids:
            issues.append(
                ConfigIssue(
                    f"{field}.parameters.account_id",
                    "unknown_debt",
                    f"no debt with id {event.parameters.account_id!r}",
                )
            )
        if event.type == "salary_change" and event.parameters.new_salary_growth is not None:
            _check_rate(issues, f"{field}.parameters.new_salary_growth", event.parameters.new_salary_growth)
        if event.type == "expense_level_change" and event.parameters.new_expense_growth is not None:
            _check_rate(issues, f"{field}.parameters.new_expense_growth", event.parameters.new_expense_growth)


def validate_inputs(
    config: ProjectionConfig,
    accounts: Sequence[AccountInput],
    debts: Sequence[DebtInput],
    start_date: dt.date,
) -> List[str]:
    """Check everything a run depends on before it starts.

    Raises ConfigurationError with every problem found. Returns warnings for
    inputs that are simulated but probably not what the caller meant.
    """
    issues: List[ConfigIssue] = []
    warnings: List[str] = []

    horizon = config.time_horizon_years
    if not MIN_HORIZON_YEARS <= horizon <= MAX_HORIZON_YEARS:
        issues.append(
            ConfigIssue(
                "config.time_horizon_years",
                "horizon_out_of_range",
                f"time_horizon_years must be between {MIN_HORIZON_YEARS} and {MAX_HORIZON_YEARS}, got {horizon}",
            )
        )

    _check_brackets(issues, "federal_tax_brackets", config)
    _check_brackets(issues, "provincial_tax_brackets", config)

    if not 0 <= config.monthly_savings_rate <= 1:
        issues.append(
            ConfigIssue(
                "config.monthly_savings_rate",
                "savings_rate_out_of_range",
                f"monthly_savings_rate must be between 0 and 1, got {config.monthly_savings_rate}",
            )
        )

    for key, share in config.savings_allocation.items():
        if share < 0:
            issues.append(
                ConfigIssue(f"config.savings_allocation.{key}", "invalid_allocation", "allocation shares cannot be negative")
            )
    allocated = sum(config.savings_allocation.values())
    if allocated > 1 + ALLOCATION_TOLERANCE:
        issues.append(
            ConfigIssue(
                "config.savings_allocation",
                "allocation_exceeds_one",
                f"savings_allocation shares sum to {allocated:.4f}, which exceeds 1.0",
            )
        )

    _check_rate(issues, "config.inflation_rate", config.inflation_rate)
    _check_rate(issues, "config.annual_salary_growth", config.annual_salary_growth)
    _check_rate(issues, "config.annual_expense_growth", config.annual_expense_growth)
    _check_rate_map(issues, "config.investment_returns", config.investment_returns)
    _check_rate_map(issues, "config.asset_appreciation", config.asset_appreciation)

    debt_ids = [debt.id for debt in debts]
    for debt_id, amount in config.extra_debt_payments.items():
        if debt_id not in debt_ids:
            issues.append(
                ConfigIssue(f"config.extra_debt_payments.{debt_id}", "unknown_debt", f"no debt with id {debt_id!r}")
            )
        if amount < 0:
            issues.append(
                ConfigIssue(
                    f"config.extra_debt_payments.{debt_id}", "invalid_amount", "extra payments cannot be negative"
                )
            )

    _check_accounts(issues, accounts, debts)

    if MIN_HORIZON_YEARS <= horizon <= MAX_HORIZON_YEARS:
        _check_events(issues, config, debt_ids, start_date, horizon_end(start_date, horizon))

    if issues:
        raise ConfigurationError(issues)

    account_types = {account.type for account in accounts if not account.is_liability}
    for key, share in config.savings_allocation.items():
        if share > 0 and key not in account_types:
            warnings.append(f"no {key} account exists; allocated savings open a new one")

    for debt in debts:
        if debt.payment_amount is None:
            continue
        monthly_payment = to_monthly_amount(debt.payment_amount, debt.payment_frequency)
        if debt.balance * debt.annual_rate / 12.0 > monthly_payment:
            warnings.append(f"payment on debt {debt.id} does not cover its interest; the balance will grow")

    return warnings
