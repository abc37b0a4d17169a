"""Configuration management for the retrieval fusion core using OmegaConf."""

import os
from pathlib import Path
from typing import Any, Dict, Optional
from omegaconf import DictConfig, OmegaConf


DEFAULT_CONFIG_DIR = Path(__file__).parent


class ConfigManager:
    """Configuration manager using OmegaConf for YAML-based configuration."""

    def __init__(self, config_dir: Optional[str] = None, environment: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files
                (defaults to FUSION_CONFIG_DIR, then the packaged defaults)
            environment: Environment name (development, production, etc.)
        """
        self.config_dir = Path(config_dir or os.getenv("FUSION_CONFIG_DIR") or DEFAULT_CONFIG_DIR)
        self.environment = environment or os.getenv("ENVIRONMENT", "default")
        self._config: Optional[DictConfig] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML files."""
        default_config_path = self.config_dir / "default.yaml"
        if not default_config_path.exists():
            # A custom directory may only carry overrides
            default_config_path = DEFAULT_CONFIG_DIR / "default.yaml"

        config = OmegaConf.load(default_config_path)

        env_config_path = self.config_dir / f"{self.environment}.yaml"
        if self.environment != "default" and env_config_path.exists():
            env_config = OmegaConf.load(env_config_path)
            config = OmegaConf.merge(config, env_config)

        user_config_path = self.config_dir / "user.yaml"
        if user_config_path.exists():
            user_config = OmegaConf.load(user_config_path)
            config = OmegaConf.merge(config, user_config)

        config = self._apply_env_overrides(config)

        self._config = config

    def _apply_env_overrides(self, config: DictConfig) -> DictConfig:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            "FUSION_SEARCH_TIMEOUT": "search.timeout",
            "FUSION_CANDIDATE_POOL_DEPTH": "search.candidate_pool_depth",
            "FUSION_DEFAULT_PAGE_SIZE": "search.default_page_size",
            "FUSION_STRATEGY": "fusion.strategy",
            "FUSION_LEXICAL_WEIGHT": "fusion.lexical_weight",
            "FUSION_VECTOR_WEIGHT": "fusion.vector_weight",
            "FUSION_RRF_K": "fusion.rrf_k",
            "FUSION_LOG_LEVEL": "logging.level",
        }

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                if env_value.lower() in ("true", "false"):
                    env_value = env_value.lower() == "true"
                elif env_value.isdigit():
                    env_value = int(env_value)
                elif env_value.replace(".", "", 1).isdigit():
                    env_value = float(env_value)

                OmegaConf.update(config, config_path, env_value, merge=True)

        return config

    @property
    def config(self) -> DictConfig:
        """Get the current configuration."""
        if self._config is None:
            self._load_config()
        return self._config

    def reload(self) -> None:
        """Reload configuration from files."""
        self._load_config()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key.

        Args:
            key: Configuration key in dot notation (e.g., 'fusion.rrf_k')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return OmegaConf.select(self.config, key, default=default)

    def section(self, name: str) -> Dict[str, Any]:
        """Return a top-level section as a plain dictionary."""
        node = OmegaConf.select(self.config, name, default=None)
        if node is None:
            return {}
        return OmegaConf.to_container(node, resolve=True)


# Global configuration manager instance
config_manager = ConfigManager()
config = config_manager.config


def get_search_config() -> Dict[str, Any]:
    """Get candidate retrieval and pagination parameters."""
    return config_manager.section("search")


def get_fusion_config() -> Dict[str, Any]:
    """Get fusion strategy parameters."""
    return config_manager.section("fusion")


def get_degradation_config() -> Dict[str, Any]:
    """Get graceful degradation parameters."""
    return config_manager.section("degradation")


def get_facet_config() -> Dict[str, Any]:
    """Get facet aggregation parameters."""
    return config_manager.section("facets")


def get_analytics_config() -> Dict[str, Any]:
    """Get catalog analytics parameters."""
    return config_manager.section("analytics")


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration parameters."""
    return config_manager.section("logging")
