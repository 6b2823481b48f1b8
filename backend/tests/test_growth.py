from math import isclose

from backend.core.growth import grow, growth_rate_for, monthly_rate


def test_zero_rate_leaves_balance_untouched():
    assert grow(1234.56, 0.0) == 1234.56


def test_twelve_months_compound_to_the_annual_rate():
    balance = 1000.0
    for _ in range(12):
        balance = grow(balance, 0.07)
    assert isclose(balance, 1070.0)
    assert isclose((1 + monthly_rate(0.07)) ** 12, 1.07)


def test_negative_rate_depreciates():
    assert grow(1000.0, -0.15) < 1000.0


def test_investment_returns_take_precedence():
    returns = {"tfsa": 0.05}
    appreciation = {"tfsa": 0.01, "house": 0.03}
    assert growth_rate_for("tfsa", returns, appreciation) == 0.05
    assert growth_rate_for("house", returns, appreciation) == 0.03
    assert growth_rate_for("chequing", returns, appreciation) == 0.0
