#!/usr/bin/env python3
"""
bed2mask Configuration Parser

Reads YAML configuration files holding defaults for bed2mask runs. Values
given on the command line take precedence over the file.

Example config.yaml:

    bed2mask:
      input: annotations/repeats.bed
      contig_coords: false
      cutoff: 50
      verbose: false
      dbdump: /opt/dazzler/bin/DBdump

Usage:
    # Validate configuration
    python config_parser.py config.yaml --validate

    # Get single value
    python config_parser.py config.yaml --get bed2mask.cutoff

    # As Python module
    from utils.config_parser import load_config, get_nested
    config = load_config("config.yaml")
    cutoff = get_nested(config, "bed2mask.cutoff", 0)
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict

import yaml

SECTION = "bed2mask"

# key -> accepted python types
KNOWN_KEYS: Dict[str, tuple] = {
    "input": (str,),
    "contig_coords": (bool,),
    "cutoff": (int,),
    "verbose": (bool,),
    "dbdump": (str,),
}

MAX_CUTOFF = 2 ** 30


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Dictionary containing configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, 'r') as f:
        config = yaml.safe_load(f)

    if config is None:
        return {}

    return config


def get_nested(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested value from config using dot notation.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path (e.g., "bed2mask.cutoff")
        default: Default value if key not found

    Returns:
        Value at the specified path, or default if not found

    Examples:
        >>> config = {"bed2mask": {"cutoff": 50}}
        >>> get_nested(config, "bed2mask.cutoff")
        50
        >>> get_nested(config, "bed2mask.missing", "default")
        'default'
    """
    keys = key_path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def validate_config(config: Dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate the bed2mask section of a configuration.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, list of error messages)

    Examples:
        >>> validate_config({"bed2mask": {"cutoff": -1}})
        (False, ['bed2mask.cutoff must be in [0, 1073741824), got -1'])
    """
    errors = []

    if not isinstance(config, dict):
        return False, ["configuration must be a mapping"]

    section = config.get(SECTION, {})
    if section is None:
        section = {}
    if not isinstance(section, dict):
        return False, [f"{SECTION} must be a mapping"]

    for key, value in section.items():
        if key not in KNOWN_KEYS:
            errors.append(f"Unknown key: {SECTION}.{key}")
            continue
        types = KNOWN_KEYS[key]
        # bool is an int subclass; do not accept true/false as a cutoff
        if not isinstance(value, types) or (types == (int,) and isinstance(value, bool)):
            expected = "/".join(t.__name__ for t in types)
            errors.append(f"{SECTION}.{key} must be {expected}, got {value!r}")

    cutoff = section.get("cutoff")
    if isinstance(cutoff, int) and not isinstance(cutoff, bool):
        if not 0 <= cutoff < MAX_CUTOFF:
            errors.append(f"{SECTION}.cutoff must be in [0, {MAX_CUTOFF}), got {cutoff}")

    return len(errors) == 0, errors


def bed2mask_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return the bed2mask section as a flat dict of known keys.

    Examples:
        >>> bed2mask_settings({"bed2mask": {"cutoff": 10}})
        {'cutoff': 10}
    """
    section = get_nested(config, SECTION, {}) or {}
    return {key: value for key, value in section.items() if key in KNOWN_KEYS}


def main():
    parser = argparse.ArgumentParser(
        description="bed2mask Configuration Parser",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "config",
        help="Path to YAML configuration file"
    )

    parser.add_argument(
        "--get",
        metavar="KEY",
        help="Get single value using dot notation (e.g., bed2mask.cutoff)"
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and report errors"
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error parsing YAML: {e}", file=sys.stderr)
        sys.exit(1)

    if args.get:
        value = get_nested(config, args.get)
        if value is None:
            print(f"Key not found: {args.get}", file=sys.stderr)
            sys.exit(1)
        print(value)

    elif args.validate:
        is_valid, errors = validate_config(config)
        if is_valid:
            print("Configuration is valid!")
            sys.exit(0)
        else:
            print("Configuration errors:", file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
            sys.exit(1)

    else:
        print(bed2mask_settings(config))


if __name__ == "__main__":
    main()
