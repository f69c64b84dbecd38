"""Application settings read from the environment."""

from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from drawdown.core.advisory import DEFAULT_MODEL, DEFAULT_TIMEOUT

DEFAULT_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cors_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ORIGINS))
    log_level: str = "INFO"
    advisory_api_key: Optional[str] = None
    advisory_model: str = DEFAULT_MODEL
    advisory_timeout: float = Field(DEFAULT_TIMEOUT, gt=0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        env = os.environ if environ is None else environ
        values = {}

        origins = env.get("DRAWDOWN_CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [origin.strip() for origin in origins.split(",") if origin.strip()]
        if env.get("DRAWDOWN_LOG_LEVEL"):
            values["log_level"] = env["DRAWDOWN_LOG_LEVEL"].upper()

        api_key = env.get("GEMINI_API_KEY") or env.get("API_KEY")
        if api_key:
            values["advisory_api_key"] = api_key
        if env.get("DRAWDOWN_ADVISORY_MODEL"):
            values["advisory_model"] = env["DRAWDOWN_ADVISORY_MODEL"]
        if env.get("DRAWDOWN_ADVISORY_TIMEOUT"):
            values["advisory_timeout"] = env["DRAWDOWN_ADVISORY_TIMEOUT"]

        return cls.model_validate(values)
