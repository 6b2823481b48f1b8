from math import isclose

import pytest
from pydantic import ValidationError

from backend.core import tax
from backend.core.errors import ConfigurationError
from backend.core.tax import compute_income_tax, compute_tax, validate_brackets
from backend.schemas.projection import TaxBracket

BRACKETS = [
    TaxBracket(up_to_income=10000, rate=0.10),
    TaxBracket(up_to_income=40000, rate=0.20),
    TaxBracket(up_to_income=0, rate=0.30),
]


def test_each_slice_taxed_at_its_own_rate():
    # 10k @ 10% + 30k @ 20% + 10k @ 30%
    assert isclose(compute_tax(50000, BRACKETS), 10000.0)
    assert isclose(compute_tax(10000, BRACKETS), 1000.0)
    assert isclose(compute_tax(25000, BRACKETS), 4000.0)


def test_zero_and_negative_income_owe_nothing():
    assert compute_tax(0, BRACKETS) == 0.0
    assert compute_tax(-5000, BRACKETS) == 0.0


def test_tax_is_monotonic_in_income():
    previous = 0.0
    for income in range(0, 120001, 2500):
        owed = compute_tax(income, BRACKETS)
        assert owed >= previous
        previous = owed


@pytest.mark.parametrize("ceiling", [10000, 40000])
def test_tax_is_continuous_at_bracket_ceilings(ceiling):
    below = compute_tax(ceiling - 1e-6, BRACKETS)
    above = compute_tax(ceiling + 1e-6, BRACKETS)
    assert isclose(below, above, abs_tol=1e-4)


def test_compute_tax_does_not_revalidate_each_call(monkeypatch):
    def fail(*_args, **_kwargs):
        raise AssertionError("brackets are validated once, before the run")

    monkeypatch.setattr(tax, "validate_brackets", fail)
    assert isclose(compute_tax(50000, BRACKETS), 10000.0)


def test_federal_and_provincial_are_summed():
    provincial = [TaxBracket(up_to_income=0, rate=0.05)]
    assert isclose(compute_income_tax(50000, BRACKETS, provincial), 10000.0 + 2500.0)


@pytest.mark.parametrize(
    "brackets",
    [
        [],
        [TaxBracket(up_to_income=10000, rate=0.1)],
        [TaxBracket(up_to_income=0, rate=0.1), TaxBracket(up_to_income=0, rate=0.2)],
        [TaxBracket(up_to_income=0, rate=0.3), TaxBracket(up_to_income=10000, rate=0.1)],
        [
            TaxBracket(up_to_income=40000, rate=0.2),
            TaxBracket(up_to_income=10000, rate=0.1),
            TaxBracket(up_to_income=0, rate=0.3),
        ],
    ],
    ids=["empty", "no-unbounded", "two-unbounded", "unbounded-first", "descending"],
)
def test_invalid_schedules_are_rejected(brackets):
    with pytest.raises(ConfigurationError) as excinfo:
        validate_brackets(brackets)
    assert excinfo.value.reasons == ["invalid_tax_brackets"]


def test_rate_outside_unit_interval_fails_schema():
    with pytest.raises(ValidationError):
        TaxBracket(up_to_income=0, rate=1.5)
