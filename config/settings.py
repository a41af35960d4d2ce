"""
GOURMET FUN — Runtime Settings & Logging

Estimation defaults come from the environment (or a local .env file) so
batch jobs can be tuned without code changes:

    RTP_TRIALS     rounds per game for the estimator      (default 1,000,000)
    RTP_SEED       base seed for reproducible runs        (default 42)
    RTP_WORKERS    processes for parallel estimation      (default 1)
    RTP_TARGET     target RTP, percent                    (default 90)
    RTP_BAND_LOW   lower edge of the accepted band, %     (default 89)
    RTP_BAND_HIGH  upper edge of the accepted band, %     (default 91)
    LOG_LEVEL      logging level name                     (default INFO)
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from rtp_engine.errors import ConfigError

load_dotenv()


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.replace("_", "").replace(",", ""))
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class EngineSettings:
    trials: int = 1_000_000
    seed: int = 42
    workers: int = 1
    target_rtp: float = 90.0
    band_low: float = 89.0
    band_high: float = 91.0
    log_level: str = "INFO"

    def __post_init__(self):
        if self.trials < 1:
            raise ConfigError(f"RTP_TRIALS must be positive, got {self.trials}")
        if self.workers < 1:
            raise ConfigError(f"RTP_WORKERS must be at least 1, got {self.workers}")
        if not self.band_low < self.band_high:
            raise ConfigError(
                f"RTP band is empty: [{self.band_low}, {self.band_high}]"
            )

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            trials=_env_int("RTP_TRIALS", cls.trials),
            seed=_env_int("RTP_SEED", cls.seed),
            workers=_env_int("RTP_WORKERS", cls.workers),
            target_rtp=_env_float("RTP_TARGET", cls.target_rtp),
            band_low=_env_float("RTP_BAND_LOW", cls.band_low),
            band_high=_env_float("RTP_BAND_HIGH", cls.band_high),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )

    @property
    def band(self) -> tuple[float, float]:
        return self.band_low, self.band_high


def configure_logging(level: str | int | None = None) -> None:
    """Root logging in the house format. Level falls back to LOG_LEVEL."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
