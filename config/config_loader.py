"""
config_loader.py
-----------------
Singleton config loader. Reads config.yaml once and caches it.
All modules access configuration through this. Engine components also
accept an explicit config dict so callers can inject tuned tables.
"""

import os
import yaml
from typing import Any, Dict


_CONFIG_CACHE: Dict[str, Any] = {}


def load_config(config_path: str | None = None) -> Dict[str, Any]:
    """
    Load and cache the YAML configuration file.

    Args:
        config_path: Path to config.yaml. Defaults to config/ relative to this file.

    Returns:
        Full config dictionary.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE:
        return _CONFIG_CACHE

    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), "config.yaml")

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        _CONFIG_CACHE = yaml.safe_load(f)

    return _CONFIG_CACHE


def get_subscription_detection_config() -> Dict[str, Any]:
    """Returns the subscription_detection block."""
    return load_config()["subscription_detection"]


def _get_detection_section(section: str) -> Any:
    """
    Returns one section of the subscription_detection block.

    Raises:
        KeyError: If the section is not in the config.
    """
    detection = get_subscription_detection_config()
    if section not in detection:
        raise KeyError(
            f"No detection config section '{section}'. "
            f"Available: {list(detection.keys())}"
        )
    return detection[section]


def get_normalizer_config() -> Dict[str, Any]:
    return _get_detection_section("normalizer")


def get_frequency_config() -> Dict[str, Any]:
    return _get_detection_section("frequency")


def get_cluster_config() -> Dict[str, Any]:
    return _get_detection_section("cluster")


def get_confidence_tiers() -> Dict[str, float]:
    """Returns confidence tier lower bounds, highest tier first."""
    return _get_detection_section("confidence_tiers")


def get_insights_config() -> Dict[str, Any]:
    """Returns the insights block."""
    return load_config()["insights"]


def reset_config() -> None:
    """Clears cached config. Useful for testing."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = {}
