"""Configuration modules for cranlike."""

from .repository_config import RepositoryConfig, RepositoryConfigError

__all__ = [
    "RepositoryConfig",
    "RepositoryConfigError",
]
