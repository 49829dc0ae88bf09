"""
Configuration management for the Binding Lookup clients.

This module provides configuration classes and utilities for managing
upstream endpoints, sequence search defaults, and logging parameters.
"""

import os
from dataclasses import dataclass, field, asdict, fields
from typing import Optional
import json

from .errors import ConfigurationError


@dataclass
class APIConfig:
    """External API endpoints and HTTP settings."""
    pubchem_base_url: str = "https://pubchem.ncbi.nlm.nih.gov/rest/pug/"
    pubchem_image_url: str = "https://pubchem.ncbi.nlm.nih.gov/image/imagefly.cgi"
    rcsb_data_base_url: str = "https://data.rcsb.org/rest/v1/"
    rcsb_search_url: str = "https://search.rcsb.org/rcsbsearch/v2/query"
    rcsb_files_base_url: str = "https://files.rcsb.org/download/"

    # Request timeout settings
    request_timeout: int = 30
    connection_timeout: int = 10
    user_agent: str = "BindingLookup/0.1"


@dataclass
class SearchConfig:
    """Sequence similarity search defaults."""
    evalue_cutoff: float = 0.01
    identity_cutoff: float = 30.0  # percent
    sequence_type: str = "protein"
    max_results: int = 100

    # Relaxed cutoffs used when picking a single best structure
    best_match_evalue_cutoff: float = 0.1
    best_match_identity_cutoff: float = 0.0

    # Raw structure files shorter than this are error placeholders
    min_structure_file_length: int = 100


@dataclass
class LoggingConfig:
    """Logging system configuration."""
    level: str = "INFO"
    format: str = "json"
    log_file: Optional[str] = None
    max_file_size_mb: int = 100
    backup_count: int = 5
    structured: bool = True


@dataclass
class SystemConfig:
    """Main configuration combining all subsystem configs."""
    api: APIConfig = field(default_factory=APIConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """
        Create configuration from environment variables.

        Raises:
            ConfigurationError: If a numeric variable does not parse
        """
        try:
            return cls._apply_env(cls())
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment setting: {e}", original_exception=e)

    @staticmethod
    def _apply_env(config: "SystemConfig") -> "SystemConfig":
        # API configuration from environment
        if os.getenv("PUBCHEM_BASE_URL"):
            config.api.pubchem_base_url = os.getenv("PUBCHEM_BASE_URL")
        if os.getenv("RCSB_DATA_BASE_URL"):
            config.api.rcsb_data_base_url = os.getenv("RCSB_DATA_BASE_URL")
        if os.getenv("RCSB_SEARCH_URL"):
            config.api.rcsb_search_url = os.getenv("RCSB_SEARCH_URL")
        if os.getenv("RCSB_FILES_BASE_URL"):
            config.api.rcsb_files_base_url = os.getenv("RCSB_FILES_BASE_URL")
        if os.getenv("REQUEST_TIMEOUT"):
            config.api.request_timeout = int(os.getenv("REQUEST_TIMEOUT"))
        if os.getenv("CONNECTION_TIMEOUT"):
            config.api.connection_timeout = int(os.getenv("CONNECTION_TIMEOUT"))

        # Search defaults from environment
        if os.getenv("SEARCH_EVALUE_CUTOFF"):
            config.search.evalue_cutoff = float(os.getenv("SEARCH_EVALUE_CUTOFF"))
        if os.getenv("SEARCH_IDENTITY_CUTOFF"):
            config.search.identity_cutoff = float(os.getenv("SEARCH_IDENTITY_CUTOFF"))
        if os.getenv("SEARCH_MAX_RESULTS"):
            config.search.max_results = int(os.getenv("SEARCH_MAX_RESULTS"))

        # Logging configuration from environment
        if os.getenv("LOG_LEVEL"):
            config.logging.level = os.getenv("LOG_LEVEL")
        if os.getenv("LOG_FORMAT"):
            config.logging.format = os.getenv("LOG_FORMAT")
        if os.getenv("LOG_FILE"):
            config.logging.log_file = os.getenv("LOG_FILE")

        return config

    @classmethod
    def from_file(cls, config_path: str) -> "SystemConfig":
        """
        Load configuration from JSON file.

        Raises:
            ConfigurationError: If the file cannot be read or is not a JSON object
        """
        try:
            with open(config_path, 'r') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load configuration from {config_path}: {e}", original_exception=e)

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file {config_path} must hold a JSON object")

        config = cls()

        # Unknown sections and keys are ignored
        for section in fields(cls):
            section_data = config_data.get(section.name)
            if not isinstance(section_data, dict):
                continue
            target = getattr(config, section.name)
            for key, value in section_data.items():
                if hasattr(target, key):
                    setattr(target, key, value)

        return config

    def to_file(self, config_path: str) -> None:
        """Save configuration to JSON file."""
        with open(config_path, 'w') as f:
            json.dump(asdict(self), f, indent=2)


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SystemConfig.from_env()
    return _config


def set_config(config: Optional[SystemConfig]) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def load_config_from_file(config_path: str) -> SystemConfig:
    """Load and set configuration from file."""
    config = SystemConfig.from_file(config_path)
    set_config(config)
    return config
