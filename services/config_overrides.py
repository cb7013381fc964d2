"""
Config override synthesis

GameCP matches overrides by environment variable LABEL, so admins can name
custom fields and configurable options after the variable label ("Server
Name", "Max Players"). A legacy "config_" prefix is accepted and stripped.
"""

from typing import Any, Dict, Mapping, Optional

RESERVED_FIELDS = frozenset({
    'Game Config ID',
    'GameCP Server ID',
    'GameCP Server Name',
    'Node ID',
    'Location',
})

LEGACY_PREFIX = 'config_'


def _effective_key(key: str) -> str:
    return key[len(LEGACY_PREFIX):] if key.startswith(LEGACY_PREFIX) else key


def _apply(overrides: Dict[str, Any], source: Optional[Mapping[str, Any]]) -> None:
    if not source or not isinstance(source, Mapping):
        return
    for key, value in source.items():
        if value is None or value == '':
            continue
        key = str(key)
        effective = _effective_key(key)
        if key in RESERVED_FIELDS or effective in RESERVED_FIELDS:
            continue
        overrides[effective] = value


def merge_config_overrides(
    custom_fields: Optional[Mapping[str, Any]],
    config_options: Optional[Mapping[str, Any]]
) -> Dict[str, Any]:
    """Merge custom fields then configurable options; options win on conflicts"""
    overrides: Dict[str, Any] = {}
    _apply(overrides, custom_fields)
    _apply(overrides, config_options)
    return overrides


def overrides_from_params(params: Dict[str, Any]) -> Dict[str, Any]:
    return merge_config_overrides(params.get('customfields'), params.get('configoptions'))
