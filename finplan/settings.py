"""Environment-driven defaults.

    FINPLAN_INFLATION_PCT          default inflation when a payload omits it (6.0)
    FINPLAN_BRACKET_INFLATION_PCT  default tax bracket inflation (2.0)
    FINPLAN_LOG_LEVEL              logging level name (INFO)
    FINPLAN_PORT                   port for ``python -m finplan.backend`` (8000)
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    inflation_rate_pct: float = 6.0
    bracket_inflation_rate_pct: float = 2.0
    log_level: str = "INFO"
    port: int = 8000


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    try:
        return float(env.get(key, default))
    except (TypeError, ValueError):
        return default


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    defaults = Settings()
    return Settings(
        inflation_rate_pct=_env_float(env, "FINPLAN_INFLATION_PCT", defaults.inflation_rate_pct),
        bracket_inflation_rate_pct=_env_float(env, "FINPLAN_BRACKET_INFLATION_PCT", defaults.bracket_inflation_rate_pct),
        log_level=str(env.get("FINPLAN_LOG_LEVEL", defaults.log_level)).upper(),
        port=int(_env_float(env, "FINPLAN_PORT", defaults.port)),
    )


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or load_settings()
    root = logging.getLogger("finplan")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level, logging.INFO))
