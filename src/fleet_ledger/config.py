from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/fleet_ledger.yaml")


@dataclass
class Settings:
    database_path: str = "fleet_ledger.db"
    migration_path: str = "migrations/sqlite/001_initial_schema.sql"
    log_level: str = "INFO"
    rate_matrix_document: str = "rate_matrix"


def load_settings(
    path: Optional[Path | str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from a YAML file, then apply environment overrides.

    The file is optional unless given explicitly; ``FLEET_LEDGER_CONFIG``
    selects a different file, ``FLEET_LEDGER_DB`` and ``FLEET_LEDGER_LOG_LEVEL``
    override single values.
    """
    environ = os.environ if environ is None else environ
    explicit = path is not None or bool(environ.get("FLEET_LEDGER_CONFIG"))
    config_path = Path(path or environ.get("FLEET_LEDGER_CONFIG") or DEFAULT_CONFIG_PATH)

    values: dict[str, Any] = {}
    if config_path.exists():
        values = _load_yaml(config_path)
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        logger.debug("No config file at %s; using defaults", config_path)

    known = {f.name for f in fields(Settings)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown settings in {config_path}: {sorted(unknown)}")

    settings = Settings(**{key: str(value) for key, value in values.items()})
    if environ.get("FLEET_LEDGER_DB"):
        settings.database_path = environ["FLEET_LEDGER_DB"]
    if environ.get("FLEET_LEDGER_LOG_LEVEL"):
        settings.log_level = environ["FLEET_LEDGER_LOG_LEVEL"]
    return settings


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_yaml(config_path: Path) -> dict[str, Any]:
    with config_path.open("r", encoding="utf-8") as config_file:
        loaded = yaml.safe_load(config_file)

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        msg = f"Config file must contain a dictionary at root: {config_path}"
        raise ValueError(msg)

    return loaded


__all__ = ["Settings", "load_settings", "configure_logging", "DEFAULT_CONFIG_PATH"]
