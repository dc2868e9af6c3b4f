"""
dossier config package public API.

File: src/dossier/config/__init__.py

Purpose
- Export the configuration record, tri-state values, validation, and the JSON store.
"""

from dossier.config.schema import (
    CONFIG_FIELDS,
    TRI_STATE_FIELDS,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    DossierConfig,
    apply_setting,
    decline_setting,
    default_config,
    is_valid_date,
    mask_secret,
    redact_config,
    unset_setting,
    validate_config,
)
from dossier.config.store import ConfigLoadError, ConfigStore, ConfigStoreError, LoadedConfig
from dossier.config.values import (
    DECLINED,
    UNSET,
    ConfigValue,
    Declined,
    Present,
    Unset,
    is_decided,
    present_or_none,
)

__all__ = [
    "CONFIG_FIELDS",
    "DECLINED",
    "TRI_STATE_FIELDS",
    "UNSET",
    "ConfigLoadError",
    "ConfigStore",
    "ConfigStoreError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ConfigValue",
    "Declined",
    "DossierConfig",
    "LoadedConfig",
    "Present",
    "Unset",
    "apply_setting",
    "decline_setting",
    "default_config",
    "is_decided",
    "is_valid_date",
    "mask_secret",
    "present_or_none",
    "redact_config",
    "unset_setting",
    "validate_config",
]
