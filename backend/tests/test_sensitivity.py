from math import isclose

import pytest

from backend.core.errors import ConfigurationError
from backend.core.projection import run_projection
from backend.core.sensitivity import debt_paid_off_month, run_sensitivity, sweep_values, with_parameter
from backend.schemas.projection import DebtInput, SensitivityRequest


def test_range_always_includes_max():
    values = sweep_values(None, 0.0, 1.0, 0.3, max_points=50)
    assert values[:3] == [0.0, 0.3, 0.6]
    assert isclose(values[3], 0.9)
    assert values[-1] == 1.0
    assert len(values) == 5


def test_listed_values_are_kept_in_order():
    assert sweep_values([0.07, 0.01, 0.04], None, None, None, max_points=50) == [0.07, 0.01, 0.04]


def test_sweep_size_is_capped():
    with pytest.raises(ConfigurationError) as excinfo:
        sweep_values(None, 0.0, 1.0, 0.001, max_points=50)
    assert excinfo.value.reasons == ["too_many_points"]


def test_with_parameter_replaces_fields_and_rate_map_entries(make_config):
    config = make_config(investment_returns={"tfsa": 0.05, "rrsp": 0.04})

    assert with_parameter(config, "time_horizon_years", 5.0).time_horizon_years == 5
    assert with_parameter(config, "investment_returns.tfsa", 0.08).investment_returns == {"tfsa": 0.08, "rrsp": 0.04}
    assert config.investment_returns["tfsa"] == 0.05


@pytest.mark.parametrize("parameter", ["events", "no_such_field", "annual_salary.base"])
def test_unknown_parameters_are_rejected(make_config, parameter):
    with pytest.raises(ConfigurationError) as excinfo:
        with_parameter(make_config(), parameter, 1.0)
    assert excinfo.value.reasons == ["unknown_parameter"]


def test_debt_paid_off_month(make_config, start_date):
    debt = DebtInput(id="car", balance=900, annual_rate=0.0, payment_amount=300)
    result = run_projection(make_config(), debts=[debt], start_date=start_date)
    assert debt_paid_off_month(result) == 3

    never = DebtInput(id="mortgage", balance=500000, annual_rate=0.05, payment_amount=2000)
    assert debt_paid_off_month(run_projection(make_config(), debts=[never], start_date=start_date)) is None


def test_points_follow_input_order(make_config, start_date):
    config = make_config(
        annual_salary=60000,
        monthly_savings_rate=1.0,
        savings_allocation={"tfsa": 1.0},
    )
    request = SensitivityRequest(
        config=config,
        start_date=start_date,
        parameter="investment_returns.tfsa",
        values=[0.10, 0.0, 0.05],
    )
    response = run_sensitivity(request, max_workers=3)

    assert response.parameter == "investment_returns.tfsa"
    assert [point.parameter_value for point in response.points] == [0.10, 0.0, 0.05]
    worth = [point.final_net_worth for point in response.points]
    assert worth[1] < worth[2] < worth[0]
    assert isclose(worth[1], 60000.0)
    assert all(point.debt_paid_off_month == 0 for point in response.points)


def test_whole_number_fields_reject_fractional_values(make_config):
    with pytest.raises(ConfigurationError) as excinfo:
        with_parameter(make_config(), "time_horizon_years", 2.5)
    assert excinfo.value.reasons == ["invalid_value"]
