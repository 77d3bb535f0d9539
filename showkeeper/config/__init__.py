"""Application configuration.

Single source of truth for all configuration values.
Loads from environment variables with .env file support.
"""

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# =============================================================================
# VERSION - Read from pyproject.toml (single source of truth)
# =============================================================================


def _get_version() -> str:
    """Read version - prefer pyproject.toml, fall back to installed metadata."""
    try:
        import tomllib

        pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
        if pyproject_path.exists():
            with open(pyproject_path, "rb") as f:
                data = tomllib.load(f)
                return data.get("project", {}).get("version", "0.0.0")
    except (OSError, KeyError, ValueError):
        pass

    try:
        from importlib.metadata import PackageNotFoundError, version

        return version("showkeeper")
    except (ImportError, PackageNotFoundError):
        pass

    return "0.0.0"


VERSION = _get_version()

# Load .env file from project root
_PROJECT_ROOT = Path(__file__).parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"
load_dotenv(_ENV_FILE)


def _is_valid_timezone(name: str | None) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


class Config:
    """Application configuration singleton.

    All configuration values should be accessed through this class.
    Values are loaded from environment variables with sensible defaults.
    """

    # Database file
    DATABASE_PATH: str = os.getenv(
        "DATABASE_PATH",
        str(_PROJECT_ROOT / "data" / "seriesdatabase.db"),
    )

    # Seconds to wait on a locked database file
    DATABASE_TIMEOUT: float = float(os.getenv("DATABASE_TIMEOUT", "30"))

    # Time zone assumed for shows that do not declare one
    _DEFAULT_SHOW_TIMEZONE: str = "America/New_York"
    _show_timezone_from_env: str | None = os.getenv("DEFAULT_SHOW_TIMEZONE")

    # Device time zone - From TZ env var, UTC otherwise
    _device_timezone_from_env: str | None = os.getenv("TZ")

    # Search result snippet markup
    SEARCH_SNIPPET_START: str = os.getenv("SEARCH_SNIPPET_START", "<b>")
    SEARCH_SNIPPET_END: str = os.getenv("SEARCH_SNIPPET_END", "</b>")
    SEARCH_SNIPPET_ELLIPSIS: str = os.getenv("SEARCH_SNIPPET_ELLIPSIS", "...")

    @classmethod
    def get_default_show_timezone_str(cls) -> str:
        """Get the fallback show time zone as a string.

        Priority:
        1. DEFAULT_SHOW_TIMEZONE env var (if valid)
        2. America/New_York
        """
        if _is_valid_timezone(cls._show_timezone_from_env):
            return cls._show_timezone_from_env
        return cls._DEFAULT_SHOW_TIMEZONE

    @classmethod
    def get_device_timezone_str(cls) -> str:
        """Get the device time zone as a string (TZ env var, else UTC)."""
        if _is_valid_timezone(cls._device_timezone_from_env):
            return cls._device_timezone_from_env
        return "UTC"

    @classmethod
    def reload(cls) -> None:
        """Reload configuration from environment.

        Useful for testing or runtime config changes.
        """
        load_dotenv(_ENV_FILE, override=True)
        cls.DATABASE_PATH = os.getenv(
            "DATABASE_PATH",
            str(_PROJECT_ROOT / "data" / "seriesdatabase.db"),
        )
        cls.DATABASE_TIMEOUT = float(os.getenv("DATABASE_TIMEOUT", "30"))
        cls._show_timezone_from_env = os.getenv("DEFAULT_SHOW_TIMEZONE")
        cls._device_timezone_from_env = os.getenv("TZ")


def get_default_show_timezone() -> ZoneInfo:
    """Get the time zone assumed for shows without one."""
    return ZoneInfo(Config.get_default_show_timezone_str())


def get_device_timezone_str() -> str:
    """Get the device time zone name."""
    return Config.get_device_timezone_str()


def get_database_path() -> Path:
    """Get the configured database file path."""
    return Path(Config.DATABASE_PATH)
