"""
Pipeline configuration loader.

Configuration is a plain dictionary, optionally read from YAML, merged over
DEFAULT_PIPELINE_CONFIG and validated before any data is touched.
"""
import copy
from pathlib import Path
from typing import Dict, Optional
import yaml

from ellipticgraph.graph.models import CLASS_ORDER

# 1 GiB; the full Elliptic features table is roughly 660 MB
DEFAULT_MAX_INPUT_SIZE_BYTES = 1 << 30

DEFAULT_PIPELINE_CONFIG = {
    'max_sample_nodes': 1000,
    'class_proportions': {'illicit': 0.1, 'licit': 0.4, 'unknown': 0.5},
    'per_class_hard_caps': {'illicit': None, 'licit': None, 'unknown': None},
    'max_examination_rows': 500000,
    'max_input_size_bytes': DEFAULT_MAX_INPUT_SIZE_BYTES,
    'parse': {
        'has_header': True,
        'delimiter': ',',
        'skip_empty_lines': True,
        'max_rows': None,
    },
}

_CLASS_KEYS = {c.value for c in CLASS_ORDER}


def _merge(base: Dict, overrides: Dict, path: str = '') -> Dict:
    """Merge overrides into a copy of base, recursing into nested sections."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if key not in base:
            raise ValueError(f"Unknown config key: '{path}{key}'")
        if isinstance(base[key], dict):
            if not isinstance(value, dict):
                raise ValueError(f"Config key '{path}{key}' must be a mapping, got {type(value).__name__}")
            merged[key] = _merge(base[key], value, path=f'{path}{key}.')
        else:
            merged[key] = value
    return merged


def validate_pipeline_config(config: Dict) -> Dict:
    """
    Check a merged pipeline configuration.

    Args:
        config: Configuration dictionary with every key of DEFAULT_PIPELINE_CONFIG

    Returns:
        The same configuration dictionary

    Raises:
        ValueError: If any value is out of range
    """
    for key in ('max_sample_nodes', 'max_examination_rows', 'max_input_size_bytes'):
        value = config[key]
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValueError(f"'{key}' must be a positive integer, got {value!r}")

    proportions = config['class_proportions']
    if set(proportions) != _CLASS_KEYS:
        raise ValueError(f"'class_proportions' must define exactly {sorted(_CLASS_KEYS)}")
    for name, value in proportions.items():
        if not isinstance(value, (int, float)) or isinstance(value, bool) or not 0.0 <= value <= 1.0:
            raise ValueError(f"Proportion for '{name}' must be in [0, 1], got {value!r}")
    if sum(proportions.values()) > 1.0 + 1e-9:
        raise ValueError(f"Class proportions sum to {sum(proportions.values()):.4f}, must be <= 1")

    for name, cap in config['per_class_hard_caps'].items():
        if cap is None:
            continue
        if not isinstance(cap, int) or isinstance(cap, bool) or cap < 0:
            raise ValueError(f"Hard cap for '{name}' must be a non-negative integer or null, got {cap!r}")

    parse = config['parse']
    if not isinstance(parse['delimiter'], str) or len(parse['delimiter']) != 1:
        raise ValueError(f"'parse.delimiter' must be a single character, got {parse['delimiter']!r}")
    max_rows = parse['max_rows']
    if max_rows is not None and (not isinstance(max_rows, int) or max_rows <= 0):
        raise ValueError(f"'parse.max_rows' must be a positive integer or null, got {max_rows!r}")

    return config


def load_pipeline_config(config_path: Optional[str] = None, overrides: Optional[Dict] = None) -> Dict:
    """
    Load pipeline configuration.

    Values come from, in increasing priority: DEFAULT_PIPELINE_CONFIG, the YAML
    file at config_path, and the overrides dictionary.

    Args:
        config_path: Optional path to a YAML config file
        overrides: Optional dictionary applied on top of the file

    Returns:
        Complete, validated configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_PIPELINE_CONFIG)

    if config_path is not None:
        config_path = Path(config_path)
        with open(config_path, 'r') as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")
        config = _merge(config, file_config)

    if overrides:
        config = _merge(config, overrides)

    return validate_pipeline_config(config)


def parse_options(config: Dict) -> Dict:
    """Parser options derived from a pipeline configuration."""
    options = dict(config['parse'])
    options['max_input_size_bytes'] = config['max_input_size_bytes']
    return options
