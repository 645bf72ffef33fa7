"""
Action input configuration for gcs-uploader.

The Actions runner passes step inputs as ``INPUT_<NAME>`` environment
variables. They are loaded here (after an optional ``.env`` file, handy for
local runs) into a typed configuration object.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass

from dotenv import load_dotenv

from gcs_uploader.errors import ConfigError
from gcs_uploader.uploader.uploader import DEFAULT_CONCURRENCY, PredefinedAcl

DEFAULT_IGNORE_FILE = ".gcloudignore"

# YAML 1.2 core schema booleans, as accepted by the Actions toolkit
_TRUE_VALUES = ("true", "True", "TRUE")
_FALSE_VALUES = ("false", "False", "FALSE")


def get_input(name: str, required: bool = False) -> str:
    """
    Read a step input from the environment.

    Args:
        name: Input name as declared by the action (``process_gcloudignore``)
        required: Raise if the input is missing or blank

    Returns:
        Trimmed value ("" if unset)

    Raises:
        ConfigError: If a required input is missing
    """
    value = os.getenv(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()
    if required and not value:
        raise ConfigError(f"Input required and not supplied: {name}")
    return value


def get_multiline_input(name: str, required: bool = False) -> str:
    """Read a step input keeping its inner newlines."""
    value = os.getenv(f"INPUT_{name.replace(' ', '_').upper()}", "")
    if required and not value.strip():
        raise ConfigError(f"Input required and not supplied: {name}")
    return value


def parse_bool(name: str, value: str, default: bool) -> bool:
    """
    Parse a boolean input.

    Raises:
        ConfigError: If ``value`` is not a YAML 1.2 core boolean
    """
    if value == "":
        return default
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(
        f'Input does not meet YAML 1.2 "Core Schema" specification: {name}\n'
        f"Support boolean input list: `true | True | TRUE | false | False | FALSE`"
    )


def parse_concurrency(value: str) -> int:
    """
    Parse the concurrency input; blank or non-numeric means the default.

    Values below 1 are passed through and rejected when the upload options
    are built.
    """
    try:
        return int(value)
    except ValueError:
        return DEFAULT_CONCURRENCY


@dataclass
class ActionConfig:
    """Inputs of one upload step."""

    # What to upload and where
    path: str
    destination: str
    glob: str = ""

    # Upload behavior
    gzip: bool = True
    resumable: bool = True
    parent: bool = True
    concurrency: int = DEFAULT_CONCURRENCY
    predefined_acl: Optional[PredefinedAcl] = None
    headers: str = ""

    # Ignore file
    process_gcloudignore: bool = True
    gcloudignore_path: str = DEFAULT_IGNORE_FILE

    # Google Cloud
    project_id: Optional[str] = None
    universe: str = "googleapis.com"

    # Runner environment
    workspace: str = "."
    output_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ActionConfig":
        """
        Load configuration from environment variables.

        Loads a ``.env`` file from the current directory if present, then
        reads ``INPUT_*`` variables, ``GITHUB_WORKSPACE`` and ``GITHUB_OUTPUT``.

        Returns:
            ActionConfig instance with loaded values

        Raises:
            ConfigError: If a required input is missing or an input is malformed
        """
        env_path = Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        return cls(
            path=get_multiline_input("path", required=True),
            destination=get_input("destination", required=True),
            glob=get_input("glob"),
            gzip=parse_bool("gzip", get_input("gzip"), True),
            resumable=parse_bool("resumable", get_input("resumable"), True),
            parent=parse_bool("parent", get_input("parent"), True),
            concurrency=parse_concurrency(get_input("concurrency")),
            predefined_acl=PredefinedAcl.parse(get_input("predefinedAcl")),
            headers=get_multiline_input("headers"),
            process_gcloudignore=parse_bool(
                "process_gcloudignore", get_input("process_gcloudignore"), True
            ),
            gcloudignore_path=get_input("gcloudignore_path") or DEFAULT_IGNORE_FILE,
            project_id=get_input("project_id") or None,
            universe=get_input("universe") or "googleapis.com",
            workspace=os.getenv("GITHUB_WORKSPACE") or os.getcwd(),
            output_path=os.getenv("GITHUB_OUTPUT") or None,
        )


# Global config instance (lazy-loaded)
_config: Optional[ActionConfig] = None


def get_config() -> ActionConfig:
    """
    Get or create the action configuration singleton.

    Example:
        >>> config = get_config()
        >>> print(config.destination)
        my-bucket/prefix
    """
    global _config
    if _config is None:
        _config = ActionConfig.from_env()
    return _config
