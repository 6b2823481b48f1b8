import pytest

from backend.core.errors import ConfigurationError
from backend.domain.validation import validate_inputs
from backend.schemas.projection import AccountInput, DebtInput


def reasons_for(config, start_date, accounts=(), debts=()):
    with pytest.raises(ConfigurationError) as excinfo:
        validate_inputs(config, accounts, debts, start_date)
    return excinfo.value.reasons


@pytest.mark.parametrize("years", [0, 31])
def test_horizon_must_be_within_range(make_config, start_date, years):
    assert reasons_for(make_config(time_horizon_years=years), start_date) == ["horizon_out_of_range"]


def test_savings_rate_must_be_a_fraction(make_config, start_date):
    assert reasons_for(make_config(monthly_savings_rate=1.5), start_date) == ["savings_rate_out_of_range"]


def test_allocation_may_not_exceed_one(make_config, start_date):
    config = make_config(savings_allocation={"tfsa": 0.7, "rrsp": 0.4})
    assert reasons_for(config, start_date) == ["allocation_exceeds_one"]


def test_allocation_summing_to_one_is_accepted(make_config, start_date):
    config = make_config(savings_allocation={"a": 0.1, "b": 0.2, "c": 0.7})
    accounts = [AccountInput(id=key, type=key) for key in "abc"]
    assert validate_inputs(config, accounts, [], start_date) == []


def test_negative_allocation_share(make_config, start_date):
    config = make_config(savings_allocation={"tfsa": -0.1})
    assert reasons_for(config, start_date) == ["invalid_allocation"]


def test_bad_brackets_are_reported_per_schedule(make_config, start_date):
    config = make_config(federal_tax_brackets=[], provincial_tax_brackets=[])
    with pytest.raises(ConfigurationError) as excinfo:
        validate_inputs(config, [], [], start_date)

    assert excinfo.value.reasons == ["invalid_tax_brackets", "invalid_tax_brackets"]
    assert [issue.field for issue in excinfo.value.issues] == [
        "config.federal_tax_brackets",
        "config.provincial_tax_brackets",
    ]


def test_rates_must_exceed_minus_one(make_config, start_date):
    config = make_config(inflation_rate=-1.0, investment_returns={"tfsa": -2.0})
    assert reasons_for(config, start_date) == ["invalid_rate", "invalid_rate"]


def test_event_outside_horizon(make_config, start_date):
    config = make_config(
        events=[{"id": "late", "type": "one_time_income", "date": "2030-01-01", "parameters": {"amount": 1}}]
    )
    assert reasons_for(config, start_date) == ["event_out_of_range"]


def test_recurring_event_needs_a_frequency(make_config, start_date):
    config = make_config(
        events=[
            {
                "id": "bonus",
                "type": "one_time_income",
                "date": "2024-02-01",
                "is_recurring": True,
                "parameters": {"amount": 1},
            }
        ]
    )
    assert reasons_for(config, start_date) == ["missing_recurrence_frequency"]


def test_extra_payment_must_name_a_known_debt(make_config, start_date):
    config = make_config(
        extra_debt_payments={"ghost": 50},
        events=[
            {
                "id": "lump",
                "type": "extra_debt_payment",
                "date": "2024-02-01",
                "parameters": {"amount": 100, "account_id": "phantom"},
            }
        ],
    )
    assert reasons_for(config, start_date) == ["unknown_debt", "unknown_debt"]


def test_account_ids_are_unique_across_accounts_and_debts(make_config, start_date):
    accounts = [AccountInput(id="shared", type="cash")]
    debts = [DebtInput(id="shared", balance=100, annual_rate=0.05, payment_amount=10)]
    assert reasons_for(make_config(), start_date, accounts, debts) == ["duplicate_account_id"]


def test_debt_needs_payment_or_term(make_config, start_date):
    debts = [DebtInput(id="loan", balance=1000, annual_rate=0.05)]
    assert reasons_for(make_config(), start_date, debts=debts) == ["missing_payment_terms"]


def test_all_issues_are_reported_together(make_config, start_date):
    config = make_config(time_horizon_years=40, monthly_savings_rate=2.0, savings_allocation={"x": 2.0})
    assert set(reasons_for(config, start_date)) == {
        "horizon_out_of_range",
        "savings_rate_out_of_range",
        "allocation_exceeds_one",
    }


def test_warnings_for_questionable_but_valid_inputs(make_config, start_date):
    config = make_config(savings_allocation={"tfsa": 1.0})
    debts = [DebtInput(id="card", balance=10000, annual_rate=0.24, payment_amount=50)]
    warnings = validate_inputs(config, [], debts, start_date)

    assert len(warnings) == 2
    assert any("tfsa" in warning for warning in warnings)
    assert any("card" in warning for warning in warnings)
