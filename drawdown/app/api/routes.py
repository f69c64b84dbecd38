"""HTTP routes for the Flask API."""

from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from drawdown.core.advisory import AdvisoryClient, AdvisoryError, MissingCredentialsError
from drawdown.core.normalizer import recorded_total
from drawdown.core.summary import run_projection
from drawdown.core.workflow import (
    RISK_TIER_DEFAULT_RETURNS,
    InputRejected,
    annualize_withdrawal,
    resolve_principal,
)
from drawdown.models import WithdrawalSchedule
from drawdown.schemas.advisory import OptimizationRequest, OptimizationResponse
from drawdown.schemas.projection import (
    NoticePayload,
    PositionPayload,
    ProjectionRequest,
    ProjectionResponse,
    RiskTierPayload,
)

api_bp = Blueprint("api", __name__)


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    return (
        jsonify({"detail": exc.errors(include_url=False, include_context=False, include_input=False)}),
        HTTPStatus.UNPROCESSABLE_ENTITY,
    )


@api_bp.errorhandler(InputRejected)
def _handle_input_rejected(exc: InputRejected):
    return jsonify({"detail": exc.errors}), HTTPStatus.BAD_REQUEST


@api_bp.errorhandler(MissingCredentialsError)
def _handle_missing_credentials(exc: MissingCredentialsError):
    return jsonify({"detail": [str(exc)]}), HTTPStatus.SERVICE_UNAVAILABLE


@api_bp.errorhandler(AdvisoryError)
def _handle_advisory_error(exc: AdvisoryError):
    return jsonify({"detail": [str(exc)]}), HTTPStatus.BAD_GATEWAY


def _schedule(payload) -> WithdrawalSchedule:
    return WithdrawalSchedule(
        base_annual_amount=annualize_withdrawal(
            payload.withdrawal.amount, payload.withdrawal.frequency
        ),
        escalation_rate_percent=payload.withdrawal.escalationRate,
    )


@api_bp.get("/ping")
def ping() -> Any:
    """Health-check endpoint."""
    return jsonify({"message": "pong"})


@api_bp.get("/risk-tiers")
def risk_tiers() -> Any:
    """Default expected return for each risk tier."""
    tiers = [
        RiskTierPayload(riskLevel=tier, defaultReturnRate=rate).model_dump(mode="json")
        for tier, rate in RISK_TIER_DEFAULT_RETURNS.items()
    ]
    return jsonify(tiers)


@api_bp.post("/projection")
def projection() -> Any:
    """Project the portfolio year by year under the requested withdrawal schedule."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = ProjectionRequest.model_validate(raw_payload)

    positions = payload.to_positions()
    principal, notices = resolve_principal(recorded_total(positions), payload.principal)
    result = run_projection(positions, principal, payload.horizon, _schedule(payload))

    response = ProjectionResponse.from_result(
        result,
        notices=[NoticePayload(level=notice.level, message=notice.message) for notice in notices],
    )
    return jsonify(response.model_dump(mode="json"))


@api_bp.post("/optimize")
def optimize() -> Any:
    """Ask the advisory service for an alternative allocation."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = OptimizationRequest.model_validate(raw_payload)
    schedule = _schedule(payload)

    client: AdvisoryClient = current_app.extensions["advisory_client"]
    result = client.optimize(
        payload.to_positions(),
        payload.horizon,
        schedule.base_annual_amount,
        schedule.escalation_rate_percent,
        language=payload.language,
    )

    response = OptimizationResponse(
        analysis=result.analysis,
        suggestedPortfolio=[
            PositionPayload.from_position(position) for position in result.suggested_positions
        ],
    )
    return jsonify(response.model_dump(mode="json"))
