"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, project_home
from .models import DEFAULT_CATEGORIES, ApiConfig, FeedConfig, GlobalConfig

__all__ = [
    "ApiConfig",
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_CATEGORIES",
    "FeedConfig",
    "GlobalConfig",
    "project_home",
]
