"""
Configuration management for PhotoTune
"""

import yaml
import os
import re
import copy
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

def _expand_env_vars(obj: Union[Dict, Any]) -> Union[Dict, Any]:
    """
    Recursively expand environment variables in config values.
    Supports ${VAR_NAME} syntax.
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        pattern = r'\$\{([^}]+)\}'
        def replace_var(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))  # Keep original if unset
        return re.sub(pattern, replace_var, obj)
    else:
        return obj

def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge overrides into a copy of defaults."""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged

def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Values missing from the file are filled in from the defaults, so callers
    can always rely on every documented section being present.

    Args:
        config_path: Path to config file. If None, uses the packaged config.yaml

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        config = _expand_env_vars(config)
        return _merge(get_default_config(), config)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return get_default_config()

def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration values

    Returns:
        Default configuration dictionary
    """
    return {
        'tuning': {
            'generation': {
                'exposure_threshold': 0.6,
                'sharpness_threshold': 0.6,
                'strength_steps': [[0.5, 0.8], [0.7, 0.6]],
                'strength_default': 0.4,
                'fallback_image_type': 'landscape',
                'preview_operation_limit': 2,
                'preview_strength_factor': 0.7,
            },
            'applicability': {
                'bilateral_max_sharpness': 0.7,
                'clahe_max_exposure': 0.8,
                'denoising_max_overall': 0.6,
                'color_balance_image_types': ['food', 'landscape', 'nature'],
            },
            'personalization': {
                'profile_weight': 0.6,
                'style_min_score': 0.1,
                'preferred_boost': 1.1,
                'default_rating': 3,
                'favorite_min_rating': 4,
                'max_preferred_algorithms': 5,
                'max_favorite_looks': 10,
                'min_insight_sessions': 5,
            },
            'feedback': {
                'too_strong_factor': 0.8,
                'too_weak_factor': 1.2,
                'improved_boost': 1.15,
                'strength_floor': 0.1,
                'strength_ceiling': 1.0,
            },
            'ceilings': {
                'clahe': 4.0,
                'unsharp_mask': 1.0,
                'color_balance': 1.5,
                'bilateral': 150.0,
                'tone_mapping': 1.0,
                'denoising': 1.0,
                'dramatic_enhancement': 1.0,
                'shadow_highlight': 100.0,
                'detail_enhancement': 1.0,
            },
        },
        'personalization': {
            'history_limit': 50,
            'cache_size': 256,
        },
        'orchestrator': {
            'max_concurrent_runs': 2,
        },
        'storage': {
            'backend': 'memory',
            'url': None,
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'color': True,
        },
    }

def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> bool:
    """
    Save configuration to YAML file

    Args:
        config: Configuration dictionary to save
        config_path: Path where to save the config

    Returns:
        True if successful, False otherwise
    """
    try:
        with open(config_path, 'w') as f:
            yaml.safe_dump(config, f, default_flow_style=False, indent=2)
        logger.info(f"Saved configuration to {config_path}")
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save config to {config_path}: {e}")
        return False

def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation

    Args:
        config: Configuration dictionary
        key_path: Dot-separated key path (e.g., 'orchestrator.max_concurrent_runs')
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default

def update_config_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """
    Update a nested configuration value using dot notation

    Args:
        config: Configuration dictionary to update
        key_path: Dot-separated key path (e.g., 'personalization.cache_size')
        value: New value to set
    """
    keys = key_path.split('.')
    current = config

    for key in keys[:-1]:
        if key not in current:
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value
