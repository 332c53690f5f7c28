"""TOML configuration loader for the scanner backend."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

DEFAULT_DB_PATH = "~/.config/nxscanner/scans.db"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


@dataclass
class DatabaseConfig:
    path: str = DEFAULT_DB_PATH


@dataclass
class LedgerConfig:
    recent_uses: int = 10
    list_limit: int = 1000
    # Seconds between expiry sweeps; 0 disables the background job.
    purge_interval_seconds: int = 60


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class ScannerConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path | None = None) -> ScannerConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    ``NXSCANNER_DB_PATH`` and ``NXSCANNER_LOG_LEVEL`` override the file.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    ldg = raw.get("ledger", {})
    lgg = raw.get("logging", {})

    db_path = os.environ.get("NXSCANNER_DB_PATH", "") or dbs.get(
        "path", DEFAULT_DB_PATH
    )
    log_level = os.environ.get("NXSCANNER_LOG_LEVEL", "") or lgg.get(
        "level", "INFO"
    )

    list_limit = int(ldg.get("list_limit", 1000))
    if list_limit <= 0:
        raise ValueError(f"ledger.list_limit must be positive: {list_limit}")

    return ScannerConfig(
        database=DatabaseConfig(path=db_path),
        ledger=LedgerConfig(
            recent_uses=int(ldg.get("recent_uses", 10)),
            list_limit=list_limit,
            purge_interval_seconds=int(ldg.get("purge_interval_seconds", 60)),
        ),
        logging=LoggingConfig(level=str(log_level).upper()),
    )


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for CLI and server entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
