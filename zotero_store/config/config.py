"""
Configuration module for zotero_store.

Handles store options and connection settings:
- StoreOptions: validated options passed to the Store
- ConnectionSettings: cluster URL and credentials plus options
- load_settings: build settings from the environment and an optional .env file
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import ConfigurationError


DEFAULT_BUCKET_NAME = "zotero"
DEFAULT_TIMEOUT = 5000
DEFAULT_POLL_INTERVAL = 100
DEFAULT_USER_LIBRARY_NAME = "User library"


class StoreOptions(BaseModel):
    """Options that can be passed to the Store constructor."""

    bucket_name: str = Field(
        default=DEFAULT_BUCKET_NAME,
        min_length=1,
        description="Name of the bucket that contains the Zotero data",
    )

    scope_name_func: Optional[Callable[[str], str]] = Field(
        default=None,
        description="Translates a users/... or groups/... prefix into a scope name",
    )

    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        description="Milliseconds to wait for the server to create objects asynchronously",
    )

    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL,
        description="Milliseconds between two checks while waiting for the server",
    )

    throw_sync_errors: bool = Field(
        default=True,
        description="Raise sync errors if true, only log them if false",
    )

    user_library_name: str = Field(
        default=DEFAULT_USER_LIBRARY_NAME,
        description="Name that is stored for the user library",
    )

    @field_validator('timeout', 'poll_interval')
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be a positive number of milliseconds")
        return v

    @field_validator('user_library_name')
    @classmethod
    def validate_user_library_name(cls, v: str) -> str:
        return v or DEFAULT_USER_LIBRARY_NAME


@dataclass
class ConnectionSettings:
    """Where and how to connect, plus the store options."""
    url: str
    username: str = ""
    password: str = ""
    options: StoreOptions = field(default_factory=StoreOptions)


# Environment variable -> StoreOptions field
ENV_OPTIONS = {
    "COUCHBASE_BUCKET": "bucket_name",
    "ZOTERO_STORE_TIMEOUT": "timeout",
    "ZOTERO_STORE_POLL_INTERVAL": "poll_interval",
    "ZOTERO_STORE_THROW_SYNC_ERRORS": "throw_sync_errors",
    "ZOTERO_STORE_USER_LIBRARY_NAME": "user_library_name",
}


def load_settings(
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    url: Optional[str] = None,
) -> ConnectionSettings:
    """
    Load connection settings from the environment.

    Reads COUCHBASE_URL, COUCHBASE_USER, COUCHBASE_PASSWORD and the variables
    listed in ENV_OPTIONS. Values from ``env_file`` (or a .env file found from
    the working directory) are added to the process environment first without
    overriding variables that are already set.

    Args:
        env_file: Path of a .env file to load
        environ: Mapping to read instead of os.environ; no .env file is loaded
        url: Connection URL overriding COUCHBASE_URL

    Returns:
        The connection settings

    Raises:
        ConfigurationError: If no URL is configured or an option is invalid
    """
    if environ is None:
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()
        environ = os.environ

    url = url or environ.get("COUCHBASE_URL")
    if not url:
        raise ConfigurationError("COUCHBASE_URL is required")

    values = {
        option: environ[variable]
        for variable, option in ENV_OPTIONS.items()
        if environ.get(variable)
    }
    try:
        options = StoreOptions(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid store configuration: {e}") from e

    return ConnectionSettings(
        url=url,
        username=environ.get("COUCHBASE_USER", ""),
        password=environ.get("COUCHBASE_PASSWORD", ""),
        options=options,
    )
