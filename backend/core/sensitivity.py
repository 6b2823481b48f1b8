"""Sensitivity sweeps: rerun one projection with a single parameter varied."""

from __future__ import annotations

import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from backend.core.errors import ConfigurationError
from backend.core.projection import run_projection
from backend.schemas.projection import (
    ProjectionConfig,
    ProjectionResponse,
    SensitivityPoint,
    SensitivityRequest,
    SensitivityResponse,
)

logger = logging.getLogger(__name__)

RATE_MAPS = ("investment_returns", "asset_appreciation", "savings_allocation", "extra_debt_payments")
# float slack so a max_value reached by repeated steps is not dropped
STEP_EPSILON = 1e-9


def sweep_values(
    values: Optional[Sequence[float]],
    min_value: Optional[float],
    max_value: Optional[float],
    step: Optional[float],
    max_points: int,
) -> List[float]:
    """Listed values as given, otherwise min..max by step with max always included."""
    if values:
        swept = list(values)
    else:
        swept = []
        count = 0
        current = min_value
        while current < max_value - STEP_EPSILON:
            swept.append(current)
            count += 1
            if count > max_points:
                break
            current = min_value + step * count
        swept.append(max_value)

    if len(swept) > max_points:
        raise ConfigurationError.single(
            "values",
            "too_many_points",
            f"a sweep may run at most {max_points} projections",
        )
    return swept


def with_parameter(config: ProjectionConfig, parameter: str, value: float) -> ProjectionConfig:
    """Copy of ``config`` with one numeric field, or one rate-map entry, replaced."""
    head, _, key = parameter.partition(".")

    if key:
        if head not in RATE_MAPS:
            raise ConfigurationError.single("parameter", "unknown_parameter", f"{head!r} is not a rate map")
        updated = dict(getattr(config, head))
        updated[key] = value
        changed = config.model_copy(update={head: updated})
    else:
        current = getattr(config, head, None) if head in ProjectionConfig.model_fields else None
        if isinstance(current, bool) or not isinstance(current, (int, float)):
            raise ConfigurationError.single(
                "parameter", "unknown_parameter", f"{parameter!r} is not a numeric config field"
            )
        if isinstance(current, int):
            if value != int(value):
                raise ConfigurationError.single(
                    "values", "invalid_value", f"{parameter!r} takes whole numbers, got {value}"
                )
            value = int(value)
        changed = config.model_copy(update={head: value})

    # model_copy skips validation; round-trip so bad values surface as pydantic errors
    return ProjectionConfig.model_validate(changed.model_dump())


def debt_paid_off_month(result: ProjectionResponse) -> Optional[int]:
    """First month index where every liability is cleared, if any."""
    for month, point in enumerate(result.debt_payoff):
        if point.total_debt == 0:
            return month
    return None


def run_sensitivity(request: SensitivityRequest, max_workers: int = 4, max_points: int = 50) -> SensitivityResponse:
    values = sweep_values(request.values, request.min_value, request.max_value, request.step, max_points)
    start_date = request.start_date or dt.date.today()
    configs = [with_parameter(request.config, request.parameter, value) for value in values]

    def _run(config: ProjectionConfig) -> ProjectionResponse:
        return run_projection(
            config,
            accounts=request.accounts,
            debts=request.debts,
            recurring_expenses=request.recurring_expenses,
            start_date=start_date,
        )

    logger.info("Running %d-point sweep over %s", len(configs), request.parameter)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(_run, configs))

    points = [
        SensitivityPoint(
            parameter_value=value,
            final_net_worth=result.net_worth[-1].value,
            debt_paid_off_month=debt_paid_off_month(result),
        )
        for value, result in zip(values, results)
    ]
    return SensitivityResponse(parameter=request.parameter, points=points)
