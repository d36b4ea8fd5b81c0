"""
Base search configuration for the FHIR facade.
Handles YAML configuration loading and the page size policy.
"""

import logging
import os
from typing import Any, Dict, Optional

import yaml

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '../..'))

DEFAULT_CONFIG_PATH = "config/fhir_facade_config.yaml"
DEFAULT_PAGE_SIZE = 10
DEFAULT_MAXIMUM_PAGE_SIZE = 100

logger = logging.getLogger(__name__)


def resolve_config_path(config_path: Optional[str] = None) -> Optional[str]:
    """
    Find the configuration file.

    Checks the given path, then the CONFIG_PATH env var, then the default
    path; each relative path is tried against the working directory first
    and the project root second.

    Returns:
        Absolute or working-directory-relative path, or None if not found
    """
    if config_path is None:
        config_path = os.getenv("CONFIG_PATH")

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if os.path.exists(config_path):
        return config_path

    rooted = os.path.join(PROJECT_ROOT, config_path)
    if os.path.exists(rooted):
        return rooted

    return None


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    A missing file is not an error: an empty configuration is returned and
    built-in defaults apply.
    """
    resolved = resolve_config_path(config_path)
    if resolved is None:
        logger.warning(f"Configuration file not found ({config_path or DEFAULT_CONFIG_PATH}), using defaults")
        return {}

    with open(resolved, 'r') as f:
        return yaml.safe_load(f) or {}


def _int_setting(value: Any, default: int, name: str) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {name}: {value!r}, using {default}")
        return default
    if parsed <= 0:
        logger.warning(f"Non-positive value for {name}: {parsed}, using {default}")
        return default
    return parsed


class PageSizePolicy:
    """
    Page size settings for search results.

    Environment Variables:
        FHIR_DEFAULT_PAGE_SIZE: Overrides paging.default_page_size (default: 10)
        FHIR_MAXIMUM_PAGE_SIZE: Overrides paging.maximum_page_size (default: 100)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, default_page_size: Optional[int] = None,
                 maximum_page_size: Optional[int] = None):
        """
        Initialize page size policy.

        Args:
            config: Loaded configuration; loaded from disk if None
            default_page_size: Explicit override, takes precedence over config
            maximum_page_size: Explicit override, takes precedence over config

        Raises:
            ValueError: If an explicit override is not a positive integer
        """
        for name, value in (("default_page_size", default_page_size), ("maximum_page_size", maximum_page_size)):
            if value is not None and (not isinstance(value, int) or value <= 0):
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

        if config is None:
            config = load_config()
        paging = config.get("paging") or {}

        self.maximum_page_size = maximum_page_size or _int_setting(
            os.getenv("FHIR_MAXIMUM_PAGE_SIZE", paging.get("maximum_page_size")),
            DEFAULT_MAXIMUM_PAGE_SIZE,
            "maximum_page_size"
        )
        configured_default = default_page_size or _int_setting(
            os.getenv("FHIR_DEFAULT_PAGE_SIZE", paging.get("default_page_size")),
            DEFAULT_PAGE_SIZE,
            "default_page_size"
        )
        self.default_page_size = min(configured_default, self.maximum_page_size)

    def preferred_page_size(self) -> int:
        return self.default_page_size

    def __repr__(self) -> str:
        return f"PageSizePolicy(default={self.default_page_size}, maximum={self.maximum_page_size})"


class BaseSearchService:
    """Base class for search services providing shared configuration."""

    def __init__(self, config_path: Optional[str] = None, page_size_policy: Optional[PageSizePolicy] = None):
        """
        Initialize base search service.

        Args:
            config_path: Path to configuration file. If None, uses CONFIG_PATH env var
                        or defaults to config/fhir_facade_config.yaml.
            page_size_policy: Explicit page size policy (default: built from config)
        """
        self.config_path = config_path
        self.config = load_config(config_path)
        self.page_size_policy = page_size_policy or PageSizePolicy(self.config)
