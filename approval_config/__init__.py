"""
approval_config -- approval settings loading and in-process storage.

Responsibility:
    Reads approval settings from YAML, validates them and hands out
    immutable, versioned ``SettingsSnapshot`` objects through
    ``SettingsStore``.  The kernel MUST NEVER import from
    ``approval_config``; it only sees the ``SettingsProvider`` interface.

Failure modes:
    - ``FileNotFoundError`` / ``yaml.YAMLError`` for unreadable files.
    - ``ValueError`` for unknown keys or unparseable values.
    - ``InvalidSettingsError`` for values that break a settings rule.
"""

from pathlib import Path

from approval_config.loader import (
    compute_checksum,
    load_settings_file,
    load_yaml_file,
    parse_settings,
    validate_settings,
)
from approval_config.store import SettingsStore

# Default settings shipped with the package
DEFAULT_SETTINGS_FILE = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "DEFAULT_SETTINGS_FILE",
    "SettingsStore",
    "compute_checksum",
    "load_settings_file",
    "load_yaml_file",
    "parse_settings",
    "validate_settings",
]
