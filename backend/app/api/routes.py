"""HTTP routes for the Flask API."""

import json
from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from backend.core.errors import ConfigurationError
from backend.core.ping import get_ping_message
from backend.core.projection import run_projection_request
from backend.core.sensitivity import run_sensitivity
from backend.schemas.ping import PingResponse
from backend.schemas.projection import ProjectionRequest, SensitivityRequest

api_bp = Blueprint("api", __name__)


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    current_app.logger.warning("Rejected request payload: %d validation error(s)", exc.error_count())
    # exc.json() keeps the error details JSON-safe (ctx can hold exceptions)
    detail = json.loads(exc.json(include_url=False))
    return jsonify({"error": "invalid_request", "detail": detail}), HTTPStatus.BAD_REQUEST


@api_bp.errorhandler(ConfigurationError)
def _handle_configuration_error(exc: ConfigurationError):
    current_app.logger.warning("Rejected projection config: %s", exc)
    issues = [issue.to_dict() for issue in exc.issues]
    return jsonify({"error": "configuration_error", "issues": issues}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.errorhandler(Exception)
def _handle_unexpected_error(exc: Exception):
    if isinstance(exc, HTTPException):
        return exc
    current_app.logger.exception("Unhandled error while serving %s", request.path)
    return jsonify({"error": "internal_error"}), HTTPStatus.INTERNAL_SERVER_ERROR


@api_bp.get("/ping")
def ping() -> Any:
    """Health-check endpoint."""
    response = PingResponse(message=get_ping_message())
    return jsonify(response.model_dump())


@api_bp.post("/projections/calculate")
def calculate_projection() -> Any:
    """Run the month-by-month projection for the posted config and balances."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = ProjectionRequest.model_validate(raw_payload)
    result = run_projection_request(payload)
    return jsonify(result.model_dump(mode="json"))


@api_bp.post("/projections/sensitivity")
def projection_sensitivity() -> Any:
    """Rerun the projection once per value of the swept parameter."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = SensitivityRequest.model_validate(raw_payload)
    settings = current_app.config["PROJECTION_SETTINGS"]
    result = run_sensitivity(
        payload,
        max_workers=settings.sensitivity_max_workers,
        max_points=settings.sensitivity_max_points,
    )
    return jsonify(result.model_dump(mode="json"))
