"""Data contracts for projection calculations."""

from __future__ import annotations

import datetime as dt
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

RecurrenceFrequency = Literal["monthly", "quarterly", "annually"]
ExpenseChangeType = Literal["absolute", "relative_amount", "relative_percent"]


# -----------------------------
# Configuration
# -----------------------------


class TaxBracket(BaseModel):
    """One slice of a progressive schedule; ``up_to_income == 0`` marks the unbounded top bracket."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    up_to_income: float = Field(..., ge=0)
    rate: float = Field(..., ge=0, le=1)


class AmountParameters(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    amount: float = Field(..., ge=0)
    category: str = ""


class ExtraDebtPaymentParameters(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    amount: float = Field(..., ge=0)
    account_id: str


class SalaryChangeParameters(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    new_salary: float = Field(..., ge=0)
    new_salary_growth: Optional[float] = None
    permanent: bool = True
    reason: str = ""


class ExpenseLevelChangeParameters(BaseModel):
    """absolute sets ``new_expenses``; relative_amount adds ``expense_change``;
    relative_percent scales by ``1 + expense_change``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    change_type: ExpenseChangeType = "absolute"
    new_expenses: float = Field(0.0, ge=0)
    expense_change: float = 0.0
    new_expense_growth: Optional[float] = None
    permanent: bool = True


class SavingsRateChangeParameters(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    new_savings_rate: float = Field(..., ge=0, le=1)
    permanent: bool = True


class EventBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    date: dt.date
    description: str = ""
    is_recurring: bool = False
    recurrence_frequency: Optional[RecurrenceFrequency] = None
    recurrence_end_date: Optional[dt.date] = None


class OneTimeIncomeEvent(EventBase):
    type: Literal["one_time_income"]
    parameters: AmountParameters


class OneTimeExpenseEvent(EventBase):
    type: Literal["one_time_expense"]
    parameters: AmountParameters


class ExtraDebtPaymentEvent(EventBase):
    type: Literal["extra_debt_payment"]
    parameters: ExtraDebtPaymentParameters


class SalaryChangeEvent(EventBase):
    type: Literal["salary_change"]
    parameters: SalaryChangeParameters


class ExpenseLevelChangeEvent(EventBase):
    type: Literal["expense_level_change"]
    parameters: ExpenseLevelChangeParameters


class SavingsRateChangeEvent(EventBase):
    type: Literal["savings_rate_change"]
    parameters: SavingsRateChangeParameters


Event = Annotated[
    Union[
        OneTimeIncomeEvent,
        OneTimeExpenseEvent,
        ExtraDebtPaymentEvent,
        SalaryChangeEvent,
        ExpenseLevelChangeEvent,
        SavingsRateChangeEvent,
    ],
    Field(discriminator="type"),
]


class ProjectionConfig(BaseModel):
    """Everything a projection run needs besides the caller's current balances."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    time_horizon_years: int = Field(..., description="Years to simulate (1-30).")
    inflation_rate: float = Field(0.0, description="Annual inflation used for the real net worth series.")
    annual_salary: float = Field(..., ge=0, description="Gross annual salary at the start of the projection.")
    annual_salary_growth: float = 0.0
    federal_tax_brackets: List[TaxBracket]
    provincial_tax_brackets: List[TaxBracket]
    monthly_expenses: float = Field(..., ge=0)
    annual_expense_growth: float = 0.0
    monthly_savings_rate: float = Field(
        0.0,
        description="Share of positive monthly cash flow that is invested; the rest accrues as cash.",
    )
    investment_returns: Dict[str, float] = Field(default_factory=dict)
    asset_appreciation: Dict[str, float] = Field(default_factory=dict)
    savings_allocation: Dict[str, float] = Field(default_factory=dict)
    extra_debt_payments: Dict[str, float] = Field(default_factory=dict)
    events: List[Event] = Field(default_factory=list)


# -----------------------------
# Current balances supplied by the accounts service
# -----------------------------


class AccountInput(BaseModel):
    """An asset account, or a liability without an amortization schedule (credit card, line of credit)."""

    model_config = ConfigDict(extra="forbid")

    id: str
    type: str
    balance: float = 0.0
    is_liability: bool = False
    name: str = ""

    @model_validator(mode="after")
    def liability_as_magnitude(self) -> "AccountInput":
        # liabilities are carried as positive amounts owed
        if self.is_liability:
            self.balance = abs(self.balance)
        return self


class DebtInput(BaseModel):
    """An amortizing debt (mortgage, loan)."""

    model_config = ConfigDict(extra="forbid")

    id: str
    type: str = "loan"
    balance: float
    annual_rate: float = Field(..., ge=0, description="Annual interest rate as a decimal (0.05 for 5%).")
    payment_amount: Optional[float] = Field(None, ge=0, description="Scheduled payment per period.")
    payment_frequency: str = "monthly"
    term_months: Optional[int] = Field(None, description="Remaining term, used when no payment amount is known.")
    name: str = ""

    @model_validator(mode="after")
    def balance_as_magnitude(self) -> "DebtInput":
        self.balance = abs(self.balance)
        return self


class RecurringExpenseInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = ""
    amount: float = Field(..., ge=0)
    frequency: str = "monthly"


class ProjectionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    config: ProjectionConfig
    accounts: List[AccountInput] = Field(default_factory=list)
    debts: List[DebtInput] = Field(default_factory=list)
    recurring_expenses: List[RecurringExpenseInput] = Field(default_factory=list)
    start_date: Optional[dt.date] = Field(None, description="First day of the projection; defaults to today.")


# -----------------------------
# Results
# -----------------------------


class DataPoint(BaseModel):
    date: dt.date
    value: float


class CashFlowPoint(BaseModel):
    date: dt.date
    income: float
    expenses: float
    net: float


class DebtPayoffPoint(BaseModel):
    date: dt.date
    total_debt: float
    debts: Dict[str, float]


class AssetBreakdownPoint(BaseModel):
    date: dt.date
    assets: Dict[str, float]


class ProjectionResponse(BaseModel):
    """Parallel monthly series; month 0 is the opening position."""

    net_worth: List[DataPoint]
    real_net_worth: List[DataPoint]
    assets: List[DataPoint]
    liabilities: List[DataPoint]
    cash_flow: List[CashFlowPoint]
    debt_payoff: List[DebtPayoffPoint]
    asset_breakdown: List[AssetBreakdownPoint]


# -----------------------------
# Sensitivity analysis
# -----------------------------


class SensitivityRequest(ProjectionRequest):
    """Rerun one projection with a single numeric parameter swept across a range."""

    parameter: str = Field(..., description="Config field, or dotted path into a rate map (investment_returns.tfsa).")
    values: Optional[List[float]] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    step: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def ensure_sweep(self) -> "SensitivityRequest":
        if self.values:
            return self
        if self.min_value is None or self.max_value is None or self.step is None:
            raise ValueError("provide either values or min_value, max_value and step")
        if self.max_value < self.min_value:
            raise ValueError("max_value must not be less than min_value")
        return self


class SensitivityPoint(BaseModel):
    parameter_value: float
    final_net_worth: float
    debt_paid_off_month: Optional[int] = None


class SensitivityResponse(BaseModel):
    parameter: str
    points: List[SensitivityPoint]
