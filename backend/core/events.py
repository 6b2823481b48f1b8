"""Life events layered over the running projection baseline.

Events are expanded (recurring ones become individual occurrences), ordered
by date with their input position as a tie-break, and bucketed by simulated
month. Resolving a month's events yields a ``MonthOverlay``:

  - one-time income, expenses and extra debt payments for that month only
  - permanent salary / expense / savings-rate changes folded into the baseline
  - non-permanent changes kept as overrides for that month only

Within a month, events of the same kind are applied in order, so the last one wins.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Sequence, Set

from dateutil.relativedelta import relativedelta

from backend.schemas.projection import (
    Event,
    ExpenseLevelChangeEvent,
    ExpenseLevelChangeParameters,
    ExtraDebtPaymentEvent,
    OneTimeExpenseEvent,
    OneTimeIncomeEvent,
    SalaryChangeEvent,
    SavingsRateChangeEvent,
)

logger = logging.getLogger(__name__)

RECURRENCE_STEP_MONTHS = {
    "monthly": 1,
    "quarterly": 3,
    "annually": 12,
}


@dataclass(frozen=True)
class Baseline:
    """Running parameters that persistent events and yearly growth modify."""

    annual_salary: float
    annual_salary_growth: float
    monthly_expenses: float
    annual_expense_growth: float
    savings_rate: float

    def with_annual_growth(self, skip: Iterable[str] = ()) -> "Baseline":
        skip = set(skip)
        salary = self.annual_salary
        expenses = self.monthly_expenses
        if "annual_salary" not in skip:
            salary *= 1 + self.annual_salary_growth
        if "monthly_expenses" not in skip:
            expenses *= 1 + self.annual_expense_growth
        return replace(self, annual_salary=salary, monthly_expenses=expenses)


@dataclass
class MonthOverlay:
    baseline: Baseline
    changed: Set[str] = field(default_factory=set)
    overrides: Dict[str, float] = field(default_factory=dict)
    one_time_income: float = 0.0
    one_time_expense: float = 0.0
    extra_debt_payments: Dict[str, float] = field(default_factory=dict)
    event_ids: List[str] = field(default_factory=list)

    def effective(self, baseline: Baseline) -> Baseline:
        """``baseline`` with this month's non-permanent overrides applied."""
        if not self.overrides:
            return baseline
        return replace(baseline, **self.overrides)


# -----------------------------
# Calendar helpers
# -----------------------------


def add_months(start: dt.date, months: int) -> dt.date:
    return start + relativedelta(months=months)


def months_between(start: dt.date, moment: dt.date) -> int:
    """Whole months elapsed from ``start`` to ``moment``."""
    months = (moment.year - start.year) * 12 + moment.month - start.month
    if add_months(start, months) > moment:
        months -= 1
    return months


def month_index(start: dt.date, moment: dt.date) -> int:
    """Simulated month an event dated ``moment`` lands in.

    Month ``m`` covers ``[start + (m - 1) months, start + m months)``, so the
    first calendar month after ``start`` is month 1.
    """
    return months_between(start, moment) + 1


def starts_new_year(month: int) -> bool:
    """True for the first month of every projection year after the first."""
    return month > 1 and (month - 1) % 12 == 0


# -----------------------------
# Expansion and ordering
# -----------------------------


def expand_recurring(events: Sequence[Event], end_date: dt.date) -> List[Event]:
    """Replace each recurring event by its occurrences before ``end_date``.

    ``end_date`` is the horizon end and is exclusive; a ``recurrence_end_date``
    is inclusive.
    """
    expanded: List[Event] = []
    for event in events:
        if not event.is_recurring:
            expanded.append(event)
            continue

        step = RECURRENCE_STEP_MONTHS.get(event.recurrence_frequency or "")
        if step is None:
            # no usable frequency: the event happens once
            expanded.append(event)
            continue

        occurrence = 0
        current = event.date
        while current < end_date and (
            event.recurrence_end_date is None or current <= event.recurrence_end_date
        ):
            expanded.append(
                event.model_copy(
                    update={
                        "id": f"{event.id}_occurrence_{occurrence}",
                        "date": current,
                        "is_recurring": False,
                        "recurrence_frequency": None,
                        "recurrence_end_date": None,
                    }
                )
            )
            occurrence += 1
            current = add_months(event.date, step * occurrence)
    return expanded


def order_events(events: Sequence[Event]) -> List[Event]:
    """Sort by date; events sharing a date keep their input order."""
    indexed = sorted(enumerate(events), key=lambda pair: (pair[1].date, pair[0]))
    return [event for _, event in indexed]


# -----------------------------
# Resolution
# -----------------------------


def apply_expense_change(current: float, params: ExpenseLevelChangeParameters) -> float:
    if params.change_type == "relative_amount":
        level = current + params.expense_change
    elif params.change_type == "relative_percent":
        level = current * (1 + params.expense_change)
    else:
        level = params.new_expenses
    return max(level, 0.0)


def resolve(events: Sequence[Event], baseline: Baseline) -> MonthOverlay:
    """Fold one month's events, already in application order, into an overlay."""
    overlay = MonthOverlay(baseline=baseline)

    for event in events:
        overlay.event_ids.append(event.id)
        current = overlay.effective(overlay.baseline)

        if isinstance(event, OneTimeIncomeEvent):
            overlay.one_time_income += event.parameters.amount

        elif isinstance(event, OneTimeExpenseEvent):
            overlay.one_time_expense += event.parameters.amount

        elif isinstance(event, ExtraDebtPaymentEvent):
            account_id = event.parameters.account_id
            overlay.extra_debt_payments[account_id] = (
                overlay.extra_debt_payments.get(account_id, 0.0) + event.parameters.amount
            )

        elif isinstance(event, SalaryChangeEvent):
            params = event.parameters
            if params.permanent:
                growth = current.annual_salary_growth
                if params.new_salary_growth is not None:
                    growth = params.new_salary_growth
                overlay.baseline = replace(
                    overlay.baseline,
                    annual_salary=params.new_salary,
                    annual_salary_growth=growth,
                )
                overlay.changed.add("annual_salary")
                overlay.overrides.pop("annual_salary", None)
            else:
                overlay.overrides["annual_salary"] = params.new_salary

        elif isinstance(event, ExpenseLevelChangeEvent):
            params = event.parameters
            level = apply_expense_change(current.monthly_expenses, params)
            if params.permanent:
                growth = current.annual_expense_growth
                if params.new_expense_growth is not None:
                    growth = params.new_expense_growth
                overlay.baseline = replace(
                    overlay.baseline,
                    monthly_expenses=level,
                    annual_expense_growth=growth,
                )
                overlay.changed.add("monthly_expenses")
                overlay.overrides.pop("monthly_expenses", None)
            else:
                overlay.overrides["monthly_expenses"] = level

        elif isinstance(event, SavingsRateChangeEvent):
            params = event.parameters
            if params.permanent:
                overlay.baseline = replace(overlay.baseline, savings_rate=params.new_savings_rate)
                overlay.changed.add("savings_rate")
                overlay.overrides.pop("savings_rate", None)
            else:
                overlay.overrides["savings_rate"] = params.new_savings_rate

    return overlay


class EventSchedule:
    """Events of one run, bucketed by the simulated month they land in."""

    def __init__(self, events: Sequence[Event], start_date: dt.date, end_date: dt.date):
        self.start_date = start_date
        self.end_date = end_date
        self.months = months_between(start_date, end_date)
        self._by_month: Dict[int, List[Event]] = {}

        ordered = order_events(expand_recurring(events, end_date))
        for event in ordered:
            # an event dated on the horizon end itself falls in the last month
            month = min(month_index(start_date, event.date), self.months)
            self._by_month.setdefault(month, []).append(event)

        logger.debug(
            "Scheduled %d event occurrence(s) across %d month(s)",
            len(ordered),
            len(self._by_month),
        )

    def resolve(self, month: int, baseline: Baseline) -> MonthOverlay:
        overlay = resolve(self._by_month.get(month, []), baseline)
        if overlay.event_ids:
            logger.debug("Month %d events: %s", month, ", ".join(overlay.event_ids))
        return overlay
