"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from environment
variables.  Defaults are provided for every field except the basic
authentication credentials, which must be supplied by the operator.  An
optional ``.env`` file is loaded by the entry point (see ``run.py``)
before ``Settings.from_env`` is called.

Settings are passed explicitly to the components that need them; the
time zone in particular is exposed as a ``ZoneInfo`` value instead of
being applied to the process as global state.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from zoneinfo import ZoneInfo


DEFAULT_PORT = ":8080"
DEFAULT_DB_PATH = ".sqlite3/todo.db"


def parse_port(value: str) -> int:
    """Parse a listen port given either as ``"8080"`` or ``":8080"``."""
    value = value.strip()
    if value.startswith(":"):
        value = value[1:]
    port = int(value)
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = "TODO API"
    api_version: str = "1.0.0"
    log_level: str = "INFO"
    log_file: str = ""
    host: str = "0.0.0.0"
    port: int = 8080
    db_path: str = DEFAULT_DB_PATH

    # Credentials for the single static user allowed to access /todos.
    basic_auth_user_id: str = ""
    basic_auth_password: str = ""

    # IANA zone used when rendering timestamps (request log, TODO records).
    time_zone: str = "Asia/Tokyo"

    # Length of the drain window after a termination signal, in seconds.
    shutdown_timeout: float = 10.0

    # Artificial delay of the health endpoint, in seconds.
    healthz_delay: float = 5.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            project_name=env.get("PROJECT_NAME", cls.project_name),
            api_version=env.get("API_VERSION", cls.api_version),
            log_level=env.get("LOG_LEVEL", cls.log_level),
            log_file=env.get("LOG_FILE", ""),
            host=env.get("HOST", cls.host),
            port=parse_port(env.get("PORT") or DEFAULT_PORT),
            db_path=env.get("DB_PATH") or DEFAULT_DB_PATH,
            basic_auth_user_id=env.get("BASIC_AUTH_USER_ID", ""),
            basic_auth_password=env.get("BASIC_AUTH_PASSWORD", ""),
            time_zone=env.get("TIME_ZONE", cls.time_zone),
            shutdown_timeout=float(env.get("SHUTDOWN_TIMEOUT", cls.shutdown_timeout)),
            healthz_delay=float(env.get("HEALTHZ_DELAY", cls.healthz_delay)),
        )

    @property
    def tz(self) -> ZoneInfo:
        """Time zone object for ``time_zone``.

        Raises ``zoneinfo.ZoneInfoNotFoundError`` for unknown names.
        """
        return ZoneInfo(self.time_zone)

    def require_basic_auth(self) -> None:
        """Raise ``ValueError`` unless both basic auth credentials are set."""
        if not self.basic_auth_user_id or not self.basic_auth_password:
            raise ValueError("BASIC_AUTH_USER_ID and BASIC_AUTH_PASSWORD are required")
