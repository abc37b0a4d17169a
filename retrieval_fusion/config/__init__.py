# Configuration package

from .settings import (
    ConfigManager,
    config,
    config_manager,
    get_analytics_config,
    get_degradation_config,
    get_facet_config,
    get_fusion_config,
    get_logging_config,
    get_search_config,
)

__all__ = [
    "ConfigManager",
    "config",
    "config_manager",
    "get_analytics_config",
    "get_degradation_config",
    "get_facet_config",
    "get_fusion_config",
    "get_logging_config",
    "get_search_config",
]
