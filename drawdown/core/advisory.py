"""
Client for the external portfolio optimization service.

The service proposes a replacement allocation plus a Markdown analysis. Its
reply is only ever used as a new input position list; nothing here touches the
projection math.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import requests
from pydantic import ValidationError

from drawdown.models import Position, RiskTier
from drawdown.schemas.advisory import AdvisoryReply
from drawdown.schemas.projection import PositionPayload

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-pro-preview"
DEFAULT_TIMEOUT = 60.0
ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
THINKING_BUDGET = 32768

LANGUAGES = {
    "en": ("English", "USD"),
    "zh": ("Chinese (Simplified)", "CNY (RMB)"),
}


class AdvisoryError(RuntimeError):
    """Base class for failures of the optimization round trip."""


class MissingCredentialsError(AdvisoryError):
    pass


class AdvisoryUnavailableError(AdvisoryError):
    pass


class MalformedAdviceError(AdvisoryError):
    pass


@dataclass(frozen=True)
class OptimizationResult:
    analysis: str
    suggested_positions: Tuple[Position, ...]


def build_prompt(
    positions: Sequence[Position],
    horizon: int,
    annual_withdrawal: float,
    escalation_rate: float,
    language: str = "en",
) -> str:
    language_name, currency = LANGUAGES[language]
    portfolio = json.dumps(
        [PositionPayload.from_position(position).model_dump(mode="json") for position in positions],
        indent=2,
        ensure_ascii=False,
    )
    return f"""
I have an investment portfolio that I want to optimize.

Context:
- Language for analysis: {language_name}
- Currency: {currency}

Current Portfolio Data:
{portfolio}

Parameters:
- Investment Horizon: {horizon} years
- Initial Annual Withdrawal Desired: {annual_withdrawal} units
- Annual Withdrawal Increase Rate: {escalation_rate}% (Inflation/Lifestyle adjustment)

Task:
1. Analyze the current portfolio's risk and potential sustainability given the withdrawal rate and its annual increase.
2. Suggest a modified portfolio structure (add/remove/edit assets) to better achieve stable growth while surviving the increasing withdrawals.
3. Ensure the Total Principal of the suggested portfolio matches the Total Principal of the current portfolio.
4. Provide the result in a structured JSON format.
   The 'analysis' field MUST be written in {language_name} using Markdown formatting,
   with tables comparing "Before vs After", and sections "Current Status", "Risk Analysis" and "Recommendations".
""".strip()


def _response_schema(language_name: str) -> Dict[str, Any]:
    return {
        "type": "OBJECT",
        "properties": {
            "analysis": {
                "type": "STRING",
                "description": f"A detailed analysis in {language_name} formatted in Markdown.",
            },
            "suggestedPortfolio": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "name": {"type": "STRING"},
                        "riskLevel": {"type": "STRING", "enum": [tier.value for tier in RiskTier]},
                        "amount": {"type": "NUMBER"},
                        "expectedReturnRate": {"type": "NUMBER"},
                    },
                    "required": ["name", "riskLevel", "amount", "expectedReturnRate"],
                },
            },
        },
        "required": ["analysis", "suggestedPortfolio"],
    }


def build_request_body(
    positions: Sequence[Position],
    horizon: int,
    annual_withdrawal: float,
    escalation_rate: float,
    language: str = "en",
) -> Dict[str, Any]:
    language_name, _ = LANGUAGES[language]
    return {
        "systemInstruction": {
            "parts": [
                {
                    "text": (
                        "You are a senior financial portfolio manager specializing in asset "
                        f"allocation and risk management. You must communicate in {language_name}. "
                        "Your output must be structured and formatted with Markdown."
                    )
                }
            ]
        },
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": build_prompt(positions, horizon, annual_withdrawal, escalation_rate, language)}
                ],
            }
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": _response_schema(language_name),
            "thinkingConfig": {"thinkingBudget": THINKING_BUDGET},
        },
    }


def parse_reply(payload: Any) -> OptimizationResult:
    """Extract and validate the JSON document embedded in a generateContent reply."""
    try:
        parts = payload["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts if not part.get("thought"))
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise MalformedAdviceError("No response from the advisory service.") from exc

    if not text.strip():
        raise MalformedAdviceError("No response from the advisory service.")

    try:
        reply = AdvisoryReply.model_validate_json(text)
    except ValidationError as exc:
        logger.error("Failed to parse advisory reply: %s", exc)
        raise MalformedAdviceError("Failed to parse optimization results.") from exc

    return OptimizationResult(
        analysis=reply.analysis,
        suggested_positions=tuple(item.to_position() for item in reply.suggestedPortfolio),
    )


class AdvisoryClient:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @property
    def url(self) -> str:
        return ENDPOINT.format(model=self.model)

    def optimize(
        self,
        positions: Sequence[Position],
        horizon: int,
        annual_withdrawal: float,
        escalation_rate: float,
        language: str = "en",
    ) -> OptimizationResult:
        """Ask the service for a replacement allocation. Raises an AdvisoryError subclass on failure."""
        if not self.api_key:
            raise MissingCredentialsError("API Key is missing.")
        if language not in LANGUAGES:
            raise ValueError(f"unsupported language '{language}'")

        body = build_request_body(positions, horizon, annual_withdrawal, escalation_rate, language)
        logger.info("Requesting optimization for %d positions from %s", len(positions), self.model)

        try:
            response = requests.post(
                self.url,
                json=body,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Advisory request failed: %s", exc)
            raise AdvisoryUnavailableError("The advisory service could not be reached.") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedAdviceError("Failed to parse optimization results.") from exc

        return parse_reply(payload)
