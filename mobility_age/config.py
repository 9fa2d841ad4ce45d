from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .constants import DEFAULT_SCORING_CONFIG
from .engine import MobilityScoreEngine
from .parser import JsonReportParser, ReportParser, TextReportParser

logger = logging.getLogger(__name__)


# -------- Helpers for environment/config -------- #


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw_lc = raw.strip().lower()
    if raw_lc in {"1", "true", "yes", "on"}:
        return True
    if raw_lc in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    history_path: str = "assessment_history.json"
    log_level: str = "WARNING"
    double_form_multiplier: bool = False
    report_format: str = "text"


def get_settings() -> Settings:
    """Read settings from the environment (and a local ``.env`` if present)."""
    load_dotenv()
    report_format = os.getenv("MOBILITY_AGE_REPORT_FORMAT", "text").strip().lower()
    if report_format not in {"text", "json"}:
        logger.warning("Unknown MOBILITY_AGE_REPORT_FORMAT %r; using text", report_format)
        report_format = "text"
    return Settings(
        history_path=os.getenv("MOBILITY_AGE_HISTORY_PATH", Settings.history_path),
        log_level=os.getenv("MOBILITY_AGE_LOG_LEVEL", Settings.log_level).strip().upper(),
        double_form_multiplier=_env_flag("MOBILITY_AGE_DOUBLE_FORM_MULTIPLIER", False),
        report_format=report_format,
    )


def configure_logging(level: Optional[str] = None) -> None:
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_engine(settings: Settings) -> MobilityScoreEngine:
    config = DEFAULT_SCORING_CONFIG
    if settings.double_form_multiplier:
        logger.info("Form multiplier applied per deficiency and again to the capped penalty")
        config = dataclasses.replace(config, double_form_multiplier=True)
    parser: ReportParser = JsonReportParser() if settings.report_format == "json" else TextReportParser()
    return MobilityScoreEngine(config=config, parser=parser)


_CACHED_ENGINE: Optional[MobilityScoreEngine] = None


def get_engine(refresh: bool = False) -> MobilityScoreEngine:
    """Engine built from the current settings; cached after the first call."""
    global _CACHED_ENGINE
    if _CACHED_ENGINE is None or refresh:
        _CACHED_ENGINE = build_engine(get_settings())
    return _CACHED_ENGINE


__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "build_engine",
    "get_engine",
]
