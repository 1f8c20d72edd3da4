"""
Runtime settings.

Values come from the environment, optionally seeded from a .env file:

    PTYXES_DB_PATH          SQLite file (default: ./ptyxes.db)
    PTYXES_LOG_LEVEL        DEBUG / INFO / WARNING ... (default: INFO)
    PTYXES_ECHO_SQL         "true" to log every rendered feed query
    PTYXES_PASSWORD_METHOD  werkzeug hash method (default: pbkdf2:sha256)
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DB_PATH = "ptyxes.db"
DEFAULT_PASSWORD_METHOD = "pbkdf2:sha256"


@dataclass(frozen=True)
class Settings:
    """Immutable configuration handed to DatabaseInterface."""
    db_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"
    echo_sql: bool = False
    password_method: str = DEFAULT_PASSWORD_METHOD


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_file: Optional path to a .env file. Existing environment
            variables take precedence over values in the file.

    Returns:
        Settings instance
    """
    load_dotenv(env_file)

    return Settings(
        db_path=os.environ.get("PTYXES_DB_PATH", DEFAULT_DB_PATH),
        log_level=os.environ.get("PTYXES_LOG_LEVEL", "INFO").upper(),
        echo_sql=os.environ.get("PTYXES_ECHO_SQL", "false").lower() == "true",
        password_method=os.environ.get("PTYXES_PASSWORD_METHOD", DEFAULT_PASSWORD_METHOD),
    )
