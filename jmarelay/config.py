"""Single source of truth for relay configuration.

All modules import settings from here rather than reading os.environ.

Values are read from a plain .env file (``config/relay.env`` by default,
or the path in ``JMARELAY_ENV_FILE``). Any ``JMARELAY_*`` variable set in
the process environment overrides the file.
"""

import os
from pathlib import Path

from dotenv import dotenv_values

PROJECT_ROOT = Path(__file__).resolve().parent.parent

ENV_PREFIX = "JMARELAY_"


def load_env_file(dotenv_path: str | Path) -> dict[str, str | None]:
    """Load a plain .env file, returning an empty mapping if it is absent."""
    path = Path(dotenv_path)
    if not path.exists():
        return {}
    return dict(dotenv_values(path))


def _load() -> dict[str, str | None]:
    env_file = os.environ.get(f"{ENV_PREFIX}ENV_FILE", str(PROJECT_ROOT / "config" / "relay.env"))
    values = load_env_file(env_file)
    values.update({k: v for k, v in os.environ.items() if k.startswith(ENV_PREFIX)})
    return values


def split_dirs(raw: str) -> list[str]:
    """Split a comma-separated directory list, dropping blanks."""
    return [d.strip() for d in raw.split(",") if d.strip()]


_settings = _load()

# --- Watcher ---
WATCH_DIRS: list[str] = split_dirs(_settings.get(f"{ENV_PREFIX}WATCH_DIRS") or "xml")

# --- Sink (Fluent Bit HTTP input) ---
ENDPOINT: str = _settings.get(f"{ENV_PREFIX}ENDPOINT") or "http://fluentbit:9880/"
HTTP_TIMEOUT: float = float(_settings.get(f"{ENV_PREFIX}HTTP_TIMEOUT") or "5")
RETRY_CEILING: float = float(_settings.get(f"{ENV_PREFIX}RETRY_CEILING") or "60")

# --- Audit ---
AUDIT_LOG_PATH: str = _settings.get(f"{ENV_PREFIX}AUDIT_LOG_PATH") or str(
    PROJECT_ROOT / "data" / "relay_audit.jsonl"
)
