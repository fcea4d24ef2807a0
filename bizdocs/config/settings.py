"""Central configuration for bizdocs."""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# bizdocs/config/settings.py -> bizdocs/config -> bizdocs -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_TRANSACTION_MAX_ATTEMPTS = 5

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_app_name() -> str:
    """Get application name."""
    return "bizdocs"


def get_app_version() -> str:
    """Get application version from pyproject.toml."""
    try:
        import tomli
        pyproject_path = PROJECT_ROOT / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            pyproject = tomli.load(f)
            return pyproject.get("project", {}).get("version", "0.1.0")
    except Exception:
        # Installed without the source tree next to it
        from .. import __version__
        return __version__


def get_database_path() -> Path:
    """Get path to the document database file.

    Returns:
        Path from BIZDOCS_DB_PATH, or data/bizdocs.db in the project root
    """
    env_path = os.getenv('BIZDOCS_DB_PATH')
    if env_path:
        return Path(env_path)
    return PROJECT_ROOT / "data" / "bizdocs.db"


def get_default_output_dir() -> Path:
    """Get default output directory for reports and exports (created if needed).

    Returns:
        Path from BIZDOCS_OUTPUT_DIR, or project root / "out"
    """
    env_path = os.getenv('BIZDOCS_OUTPUT_DIR')
    output_dir = Path(env_path) if env_path else PROJECT_ROOT / "out"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def get_transaction_max_attempts() -> int:
    """Get how many times a conflicting transaction is attempted before aborting.

    Returns:
        BIZDOCS_TXN_MAX_ATTEMPTS as a positive int, default 5
    """
    raw = os.getenv('BIZDOCS_TXN_MAX_ATTEMPTS')
    if raw is None or raw.strip() == "":
        return DEFAULT_TRANSACTION_MAX_ATTEMPTS
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid BIZDOCS_TXN_MAX_ATTEMPTS: {raw!r}, using {DEFAULT_TRANSACTION_MAX_ATTEMPTS}")
        return DEFAULT_TRANSACTION_MAX_ATTEMPTS
    if value < 1:
        logger.warning(f"BIZDOCS_TXN_MAX_ATTEMPTS must be >= 1, got {value}, using {DEFAULT_TRANSACTION_MAX_ATTEMPTS}")
        return DEFAULT_TRANSACTION_MAX_ATTEMPTS
    return value


def get_log_level() -> str:
    """Get log level name from BIZDOCS_LOG_LEVEL (default WARNING)."""
    level = os.getenv('BIZDOCS_LOG_LEVEL', 'WARNING').upper()
    if level not in _LOG_LEVELS:
        logger.warning(f"Invalid log level: {level}, using 'WARNING'")
        return 'WARNING'
    return level


def get_sequences_file() -> Optional[Path]:
    """Get an alternate sequence definitions file, if configured.

    Returns:
        Path from BIZDOCS_SEQUENCES_FILE, or None to use the bundled file
    """
    env_path = os.getenv('BIZDOCS_SEQUENCES_FILE')
    if env_path:
        return Path(env_path)
    return None
