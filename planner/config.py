import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from planner.models import PROJECTION_INTERVALS


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    saves_dir: Path = Path("saves")
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    default_interval: str = "monthly"
    lowest_count: int = 3
    max_horizon_years: int = 2


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    if value < 1:
        logger.warning("Ignoring %s=%r: must be at least 1", name, raw)
        return default
    return value


def load_settings() -> Settings:
    interval = os.getenv("PLANNER_DEFAULT_INTERVAL", Settings.default_interval)
    if interval not in PROJECTION_INTERVALS:
        logger.warning("Ignoring PLANNER_DEFAULT_INTERVAL=%r", interval)
        interval = Settings.default_interval

    return Settings(
        saves_dir=Path(os.getenv("PLANNER_SAVES_DIR", str(Settings.saves_dir))),
        log_level=os.getenv("PLANNER_LOG_LEVEL", Settings.log_level).upper(),
        log_file=os.getenv("PLANNER_LOG_FILE") or None,
        default_interval=interval,
        lowest_count=_env_int("PLANNER_LOWEST_COUNT", Settings.lowest_count),
        max_horizon_years=_env_int("PLANNER_MAX_HORIZON_YEARS", Settings.max_horizon_years),
    )


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.WARNING)
    if settings.log_file:
        logging.basicConfig(filename=settings.log_file, level=level, format=LOG_FORMAT)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)
