"""
Process and host facts read from the environment.

APP_ENVIRONMENT names the deployment environment (Development enables the
interactive API docs); when unset the service reports Production.
"""

import os
import socket

DEFAULT_ENVIRONMENT = "Production"


def get_environment_name() -> str:
    """Environment name from APP_ENVIRONMENT; Production when unset or blank."""
    return os.environ.get("APP_ENVIRONMENT", "").strip() or DEFAULT_ENVIRONMENT


def is_development(environment: str) -> bool:
    return environment.strip().lower() == "development"


def get_machine_name() -> str:
    """Host name, as reported in the status snapshot and span tags."""
    return socket.gethostname()


def get_process_id() -> int:
    return os.getpid()
