import datetime as dt

import pytest

from backend.app import create_app
from backend.config import Settings
from backend.schemas.projection import ProjectionConfig, TaxBracket

START = dt.date(2024, 1, 1)


@pytest.fixture
def app():
    return create_app(Settings(sensitivity_max_points=10, sensitivity_max_workers=2))


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def start_date() -> dt.date:
    return START


@pytest.fixture
def make_config():
    """Factory for a tax-free, expense-free one-year config; keyword overrides win."""

    def _make(**overrides) -> ProjectionConfig:
        fields = {
            "time_horizon_years": 1,
            "annual_salary": 0.0,
            "federal_tax_brackets": [TaxBracket(up_to_income=0, rate=0.0)],
            "provincial_tax_brackets": [TaxBracket(up_to_income=0, rate=0.0)],
            "monthly_expenses": 0.0,
        }
        fields.update(overrides)
        return ProjectionConfig.model_validate(fields)

    return _make
