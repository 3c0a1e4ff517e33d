"""
Repository configuration loader.

Settings are resolved in this order, later sources winning:

1. Built-in defaults (official CRAN, default agent)
2. The [repository] section of an INI file
3. Environment variables (CRANLIKE_REPO_URL, CRANLIKE_USER, ...)

Example cranlike.ini:
    [repository]
    url = https://artifactory.example.com/artifactory/cran-remote
    user = deploy
    password = secret
    timeout = 60
"""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from cranlike.packages.repository import DEFAULT_CHUNK_SIZE
from cranlike.packages.transport import DEFAULT_CRAN_URL, DEFAULT_HTTP_AGENT, DEFAULT_TIMEOUT

SECTION = "repository"
DEFAULT_CONFIG_FILE = "cranlike.ini"

ENV_CONFIG = "CRANLIKE_CONFIG"
ENV_VARS = {
    "url": "CRANLIKE_REPO_URL",
    "user": "CRANLIKE_USER",
    "password": "CRANLIKE_PASSWORD",
    "agent": "CRANLIKE_AGENT",
    "timeout": "CRANLIKE_TIMEOUT",
}


class RepositoryConfigError(Exception):
    """Exception raised for repository configuration errors."""

    pass


@dataclass
class RepositoryConfig:
    """Connection settings for a CRAN-like repository."""

    repo_url: str = DEFAULT_CRAN_URL
    user: Optional[str] = None
    password: Optional[str] = None
    agent: str = DEFAULT_HTTP_AGENT
    timeout: float = DEFAULT_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @classmethod
    def load(cls, ini_path: Optional[Path] = None) -> "RepositoryConfig":
        """
        Load configuration from an INI file and the environment.

        Args:
            ini_path: Optional INI file. When omitted, CRANLIKE_CONFIG is
                used, then ./cranlike.ini if it exists.

        Returns:
            RepositoryConfig with all sources applied

        Raises:
            RepositoryConfigError: If an explicit file is missing, the file
                cannot be parsed, or a numeric value is invalid
        """
        values: Dict[str, str] = {}

        path = cls._find_config_file(ini_path)
        if path is not None:
            values.update(cls._read_ini(path))

        for key, env_var in ENV_VARS.items():
            env_value = os.environ.get(env_var)
            if env_value:
                values[key] = env_value

        config = cls()
        if "url" in values:
            config.repo_url = values["url"]
        if "user" in values:
            config.user = values["user"]
        if "password" in values:
            config.password = values["password"]
        if "agent" in values:
            config.agent = values["agent"]
        if "timeout" in values:
            config.timeout = _parse_number(values["timeout"], "timeout", float)
        if "chunk_size" in values:
            config.chunk_size = _parse_number(values["chunk_size"], "chunk_size", int)
        return config

    @staticmethod
    def _find_config_file(ini_path: Optional[Path]) -> Optional[Path]:
        if ini_path is None:
            env_path = os.environ.get(ENV_CONFIG)
            if env_path:
                ini_path = Path(env_path)
            else:
                default = Path.cwd() / DEFAULT_CONFIG_FILE
                return default if default.exists() else None

        if not ini_path.exists():
            raise RepositoryConfigError(f"Configuration file not found: {ini_path}")
        return ini_path

    @staticmethod
    def _read_ini(ini_path: Path) -> Dict[str, str]:
        parser = configparser.ConfigParser(interpolation=None)
        try:
            parser.read(ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise RepositoryConfigError(f"Failed to parse {ini_path}: {e}") from e

        if not parser.has_section(SECTION):
            return {}
        return {key: value for key, value in parser.items(SECTION) if value}

    def with_overrides(self, **overrides: Optional[object]) -> "RepositoryConfig":
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        unknown = set(values) - set(self.__dataclass_fields__)
        if unknown:
            raise RepositoryConfigError(f"Unknown configuration keys: {sorted(unknown)}")
        merged = dict(self.__dict__)
        merged.update(values)
        return RepositoryConfig(**merged)


def _parse_number(value: str, key: str, kind):
    try:
        number = kind(value)
    except ValueError as e:
        raise RepositoryConfigError(f"Invalid {key} value: {value!r}") from e
    if number <= 0:
        raise RepositoryConfigError(f"{key} must be positive, got {value!r}")
    return number
