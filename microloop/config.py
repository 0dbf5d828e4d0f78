"""
Settings for the command line tour, read from ``MICROLOOP_*`` environment
variables. The library itself never reads the environment: ``Scheduler`` and
friends take everything as constructor arguments.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

ENV_PREFIX = "MICROLOOP"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    # Sleep for real between timers instead of jumping a virtual clock
    real_time: bool = False
    report_unhandled: bool = True

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            log_level=os.getenv(_k("LOG_LEVEL"), "INFO"),
            log_file=_env_path(_k("LOG_FILE")),
            real_time=_env_bool(_k("REAL_TIME"), False),
            report_unhandled=_env_bool(_k("REPORT_UNHANDLED"), True),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
