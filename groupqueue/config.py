"""
Runtime settings for the group message job store.

Values come from the environment (after loading .env), with defaults
suitable for local development.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from .env import load_env

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    db_path: Path = Path("data/groupqueue.db")
    corruption_state_path: Path = Path("data/corruption_state.json")
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_file: bool = True


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in TRUE_VALUES


def load_settings(load_dotenv_file: bool = True) -> Settings:
    """
    Build Settings from GROUPQUEUE_* environment variables.

    Args:
        load_dotenv_file: Load ./.env first (existing variables are kept)

    Returns:
        Settings instance
    """
    if load_dotenv_file:
        load_env()

    defaults = Settings()
    return Settings(
        db_path=Path(os.getenv("GROUPQUEUE_DB_PATH", str(defaults.db_path))),
        corruption_state_path=Path(
            os.getenv("GROUPQUEUE_CORRUPTION_STATE_PATH", str(defaults.corruption_state_path))
        ),
        log_level=os.getenv("GROUPQUEUE_LOG_LEVEL", defaults.log_level).upper(),
        log_dir=Path(os.getenv("GROUPQUEUE_LOG_DIR", str(defaults.log_dir))),
        log_to_file=_env_flag("GROUPQUEUE_LOG_TO_FILE", defaults.log_to_file),
    )
