from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from backend.core.amortization import apply_month, scheduled_payment, to_monthly_amount
from backend.core.events import Baseline, EventSchedule, add_months, starts_new_year
from backend.core.growth import grow, growth_rate_for
from backend.core.tax import compute_income_tax
from backend.domain.validation import horizon_end, validate_inputs
from backend.schemas.projection import (
    AccountInput,
    AssetBreakdownPoint,
    CashFlowPoint,
    DataPoint,
    DebtInput,
    DebtPayoffPoint,
    ProjectionConfig,
    ProjectionRequest,
    ProjectionResponse,
    RecurringExpenseInput,
)

logger = logging.getLogger(__name__)

CASH_ACCOUNT_TYPES = ("cash", "checking", "savings")
SYNTHETIC_PREFIX = "projected-"


# -----------------------------
# Per-run state
# -----------------------------


@dataclass
class AccountState:
    id: str
    type: str
    balance: float


@dataclass
class DebtState:
    """An amortizing debt; ``balance`` is the positive amount owed."""

    id: str
    type: str
    balance: float
    annual_rate: float
    monthly_payment: float
    paid_off_month: Optional[int] = None


@dataclass
class MonthFlows:
    income: float = 0.0
    expenses: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expenses


class ProjectionSeries:
    """Accumulates the response series one snapshot at a time."""

    def __init__(self, inflation_rate: float):
        self.inflation_rate = inflation_rate
        self.net_worth: List[DataPoint] = []
        self.real_net_worth: List[DataPoint] = []
        self.assets: List[DataPoint] = []
        self.liabilities: List[DataPoint] = []
        self.cash_flow: List[CashFlowPoint] = []
        self.debt_payoff: List[DebtPayoffPoint] = []
        self.asset_breakdown: List[AssetBreakdownPoint] = []

    def record(
        self,
        month: int,
        date: dt.date,
        assets: Sequence[AccountState],
        static_liabilities: Sequence[AccountState],
        debts: Sequence[DebtState],
        flows: MonthFlows,
    ) -> None:
        asset_total = sum(account.balance for account in assets)

        owed: Dict[str, float] = {}
        for liability in static_liabilities:
            owed[liability.id] = liability.balance
        for debt in debts:
            owed[debt.id] = debt.balance
        liability_total = sum(owed.values())

        net_worth = asset_total - liability_total
        price_level = (1 + self.inflation_rate) ** (month / 12.0)

        by_type: Dict[str, float] = {}
        for account in assets:
            by_type[account.type] = by_type.get(account.type, 0.0) + account.balance

        self.net_worth.append(DataPoint(date=date, value=net_worth))
        self.real_net_worth.append(DataPoint(date=date, value=net_worth / price_level))
        self.assets.append(DataPoint(date=date, value=asset_total))
        self.liabilities.append(DataPoint(date=date, value=liability_total))
        self.cash_flow.append(
            CashFlowPoint(date=date, income=flows.income, expenses=flows.expenses, net=flows.net)
        )
        self.debt_payoff.append(DebtPayoffPoint(date=date, total_debt=liability_total, debts=owed))
        self.asset_breakdown.append(AssetBreakdownPoint(date=date, assets=by_type))

    def to_response(self) -> ProjectionResponse:
        return ProjectionResponse(
            net_worth=self.net_worth,
            real_net_worth=self.real_net_worth,
            assets=self.assets,
            liabilities=self.liabilities,
            cash_flow=self.cash_flow,
            debt_payoff=self.debt_payoff,
            asset_breakdown=self.asset_breakdown,
        )


# -----------------------------
# Setup helpers
# -----------------------------


def monthly_debt_payment(debt: DebtInput) -> float:
    """Monthly-equivalent scheduled payment, derived from the term when no amount is on file."""
    if debt.payment_amount is not None:
        per_period = debt.payment_amount
    else:
        per_period = scheduled_payment(debt.balance, debt.annual_rate, debt.term_months, debt.payment_frequency)
    return to_monthly_amount(per_period, debt.payment_frequency)


def _initial_state(
    config: ProjectionConfig,
    accounts: Sequence[AccountInput],
    debts: Sequence[DebtInput],
):
    assets = [
        AccountState(id=account.id, type=account.type, balance=account.balance)
        for account in accounts
        if not account.is_liability
    ]
    static_liabilities = [
        AccountState(id=account.id, type=account.type, balance=account.balance)
        for account in accounts
        if account.is_liability
    ]

    cash = next((account for account in assets if account.type in CASH_ACCOUNT_TYPES), None)
    if cash is None:
        cash = AccountState(id=f"{SYNTHETIC_PREFIX}cash", type="cash", balance=0.0)
        assets.append(cash)

    # allocated savings need somewhere to land
    held_types = {account.type for account in assets}
    for account_type, share in config.savings_allocation.items():
        if share > 0 and account_type not in held_types:
            assets.append(AccountState(id=f"{SYNTHETIC_PREFIX}{account_type}", type=account_type, balance=0.0))
            held_types.add(account_type)

    debt_states = [
        DebtState(
            id=debt.id,
            type=debt.type,
            balance=debt.balance,
            annual_rate=debt.annual_rate,
            monthly_payment=monthly_debt_payment(debt),
        )
        for debt in debts
    ]
    return assets, static_liabilities, cash, debt_states


def allocate_savings(
    invested: float,
    allocation: Dict[str, float],
    assets: Sequence[AccountState],
) -> float:
    """Deposit ``invested`` across account types by allocation share.

    Accounts sharing a type split that type's share evenly. Returns the
    amount deposited; any unallocated remainder is left to the caller.
    """
    deposited = 0.0
    for account_type, share in allocation.items():
        if share <= 0:
            continue
        targets = [account for account in assets if account.type == account_type]
        if not targets:
            continue
        amount = invested * share
        for account in targets:
            account.balance += amount / len(targets)
        deposited += amount
    return deposited


# -----------------------------
# Simulation
# -----------------------------


def run_projection(
    config: ProjectionConfig,
    accounts: Sequence[AccountInput] = (),
    debts: Sequence[DebtInput] = (),
    recurring_expenses: Sequence[RecurringExpenseInput] = (),
    start_date: Optional[dt.date] = None,
) -> ProjectionResponse:
    """
    Simulate the configured finances month by month.

    Month 0 records the opening position. Month m covers the calendar month
    starting m - 1 months after the start date. Each month, in order:
      1) resolve that month's events against the running baseline
      2) in the first month of each later year, grow salary and expenses
         (unless an event just set them)
      3) gross income and tax (one-time income is taxed on top of the salary)
      4) expenses, including this month's actual debt payments
      5) net cash flow; a shortfall comes out of cash, which may go negative
      6) a surplus is invested by savings rate and allocation, the rest kept as cash
      7) grow every asset account
      8) advance debts
      9) snapshot

    Liabilities are positive amounts owed; net worth is assets minus liabilities.
    """
    start_date = start_date or dt.date.today()
    for warning in validate_inputs(config, accounts, debts, start_date):
        logger.warning("Projection input: %s", warning)

    total_months = config.time_horizon_years * 12
    assets, static_liabilities, cash, debt_states = _initial_state(config, accounts, debts)
    schedule = EventSchedule(config.events, start_date, horizon_end(start_date, config.time_horizon_years))

    recurring_monthly = sum(to_monthly_amount(item.amount, item.frequency) for item in recurring_expenses)
    baseline = Baseline(
        annual_salary=config.annual_salary,
        annual_salary_growth=config.annual_salary_growth,
        monthly_expenses=config.monthly_expenses + recurring_monthly,
        annual_expense_growth=config.annual_expense_growth,
        savings_rate=config.monthly_savings_rate,
    )

    logger.debug(
        "Starting projection: %d months, %d asset account(s), %d debt(s), %d event(s)",
        total_months,
        len(assets),
        len(debt_states),
        len(config.events),
    )

    series = ProjectionSeries(config.inflation_rate)
    series.record(0, start_date, assets, static_liabilities, debt_states, MonthFlows())

    for month in range(1, total_months + 1):
        date = add_months(start_date, month)

        # ---------- Events ----------
        overlay = schedule.resolve(month, baseline)
        baseline = overlay.baseline

        # ---------- Yearly growth ----------
        if starts_new_year(month):
            baseline = baseline.with_annual_growth(skip=overlay.changed)
        effective = overlay.effective(baseline)

        # ---------- Income ----------
        salary_tax = compute_income_tax(
            effective.annual_salary, config.federal_tax_brackets, config.provincial_tax_brackets
        )
        gross = effective.annual_salary / 12.0 + overlay.one_time_income
        tax = salary_tax / 12.0
        if overlay.one_time_income:
            tax += (
                compute_income_tax(
                    effective.annual_salary + overlay.one_time_income,
                    config.federal_tax_brackets,
                    config.provincial_tax_brackets,
                )
                - salary_tax
            )
        flows = MonthFlows(income=gross - tax)

        # ---------- Expenses ----------
        debt_steps = {}
        debt_paid = 0.0
        for debt in debt_states:
            extra = config.extra_debt_payments.get(debt.id, 0.0) + overlay.extra_debt_payments.get(debt.id, 0.0)
            step = apply_month(debt.balance, debt.annual_rate, debt.monthly_payment, extra)
            debt_steps[debt.id] = step
            debt_paid += step.total_paid
        flows.expenses = effective.monthly_expenses + overlay.one_time_expense + debt_paid

        # ---------- Savings ----------
        net = flows.net
        if net > 0:
            invested = net * effective.savings_rate
            deposited = allocate_savings(invested, config.savings_allocation, assets)
            cash.balance += net - deposited
        else:
            cash.balance += net

        # ---------- Growth ----------
        for account in assets:
            rate = growth_rate_for(account.type, config.investment_returns, config.asset_appreciation)
            account.balance = grow(account.balance, rate)

        # ---------- Debts ----------
        for debt in debt_states:
            step = debt_steps[debt.id]
            debt.balance = step.new_balance
            if step.paid_off and debt.paid_off_month is None:
                debt.paid_off_month = month
                logger.debug("Debt %s paid off in month %d (%s)", debt.id, month, date.isoformat())

        series.record(month, date, assets, static_liabilities, debt_states, flows)

    logger.debug(
        "Projection finished: final net worth %.2f after %d months",
        series.net_worth[-1].value,
        total_months,
    )
    return series.to_response()


def run_projection_request(request: ProjectionRequest) -> ProjectionResponse:
    """Run a projection straight from a validated request payload."""
    return run_projection(
        request.config,
        accounts=request.accounts,
        debts=request.debts,
        recurring_expenses=request.recurring_expenses,
        start_date=request.start_date,
    )


__all__ = [
    "AccountState",
    "DebtState",
    "MonthFlows",
    "ProjectionSeries",
    "allocate_savings",
    "monthly_debt_payment",
    "run_projection",
    "run_projection_request",
]
