"""Settings domain model and wire codec.

The settings object is a single backend-persisted record. The client keeps it
as an immutable snapshot: every change produces a new ``Settings`` value via
``dataclasses.replace`` so readers never observe a half-applied mutation.

Wire keys follow the backend's serialized layout (``use_tsf_reconvert`` is the
legacy reconversion flag, ``use_azookey_conversion`` the advanced conversion
flag). Absent keys fall back to the backend defaults; an unknown on-copy mode
rejects the whole decode. Keys this client does not model are carried in
``extra`` and written back unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

__all__ = [
    "OnCopyMode",
    "Settings",
    "SettingsField",
    "SettingsDecodeError",
    "EXCLUSIVE_FLAGS",
]


class SettingsDecodeError(ValueError):
    """Raised when a backend settings payload cannot be decoded."""


class OnCopyMode(str, Enum):
    RETURN_TO_CLIPBOARD = "ReturnToClipboard"
    RETURN_TO_CHATBOX = "ReturnToChatbox"
    SEND_DIRECTLY = "SendDirectly"


class SettingsField(str, Enum):
    """Addressable settings fields (value = attribute name)."""

    PREFIX = "prefix"
    SPLIT = "split"
    COMMAND = "command"
    IGNORE_PREFIX = "ignore_prefix"
    ON_COPY_MODE = "on_copy_mode"
    SKIP_URL = "skip_url"
    SKIP_OUTSIDE_TARGET_APP = "skip_outside_target_app"
    USE_LEGACY_RECONVERT = "use_legacy_reconvert"
    USE_ADVANCED_CONVERSION = "use_advanced_conversion"
    ANNOUNCE_LEGACY_RECONVERT = "announce_legacy_reconvert"
    ANNOUNCE_ADVANCED_CONVERSION = "announce_advanced_conversion"


EXCLUSIVE_FLAGS = (SettingsField.USE_LEGACY_RECONVERT, SettingsField.USE_ADVANCED_CONVERSION)

_STRING_FIELDS = {SettingsField.PREFIX, SettingsField.SPLIT, SettingsField.COMMAND}

# attribute name -> wire key
_WIRE_KEYS: Dict[str, str] = {
    "prefix": "prefix",
    "split": "split",
    "command": "command",
    "ignore_prefix": "ignore_prefix",
    "on_copy_mode": "on_copy_mode",
    "skip_url": "skip_url",
    "skip_outside_target_app": "skip_on_out_of_vrc",
    "use_legacy_reconvert": "use_tsf_reconvert",
    "use_advanced_conversion": "use_azookey_conversion",
    "announce_legacy_reconvert": "tsf_announce",
    "announce_advanced_conversion": "azookey_announce",
}


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable settings snapshot.

    Attributes
    ----------
    prefix: Trigger prefix; inert while ``ignore_prefix`` is true.
    split: Delimiter separating multiple conversion segments.
    command: Token that switches conversion mode.
    ignore_prefix: Convert unconditionally (prefix not consulted).
    on_copy_mode: Where converted text is delivered.
    skip_url: Skip text containing URLs.
    skip_outside_target_app: Skip copies originating outside the target app.
    use_legacy_reconvert: Legacy reconversion strategy (needs the capability).
    use_advanced_conversion: Advanced conversion strategy.
    announce_legacy_reconvert: Whether the legacy strategy was announced.
    announce_advanced_conversion: Whether the advanced strategy was announced.
    extra: Unmodelled wire keys, preserved as sorted ``(key, value)`` pairs.
    """

    prefix: str = ";"
    split: str = "/"
    command: str = ";"
    ignore_prefix: bool = True
    on_copy_mode: OnCopyMode = OnCopyMode.RETURN_TO_CHATBOX
    skip_url: bool = True
    skip_outside_target_app: bool = True
    use_legacy_reconvert: bool = True
    use_advanced_conversion: bool = False
    announce_legacy_reconvert: bool = False
    announce_advanced_conversion: bool = False
    extra: Tuple[Tuple[str, Any], ...] = ()

    def get(self, field: SettingsField) -> Any:
        return getattr(self, field.value)

    def with_field(self, field: SettingsField, value: Any) -> "Settings":
        """Return a copy with ``field`` set to a validated ``value``."""
        return replace(self, **{field.value: _coerce(field, value)})

    def exclusive_conflict(self) -> bool:
        return self.use_legacy_reconvert and self.use_advanced_conversion

    def to_wire(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        for f in _modelled_fields():
            value = getattr(self, f.name)
            data[_WIRE_KEYS[f.name]] = value.value if isinstance(value, Enum) else value
        return data

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "Settings":
        if not isinstance(data, Mapping):
            raise SettingsDecodeError(f"settings payload must be an object, got {type(data).__name__}")
        defaults = cls()
        kwargs: Dict[str, Any] = {}
        for f in _modelled_fields():
            key = _WIRE_KEYS[f.name]
            if key not in data or data[key] is None:
                continue
            try:
                kwargs[f.name] = _coerce(SettingsField(f.name), data[key])
            except (TypeError, ValueError) as e:
                raise SettingsDecodeError(f"invalid value for {key!r}: {e}") from e
        known = set(_WIRE_KEYS.values())
        extra = [(k, v) for k, v in data.items() if k not in known]
        kwargs["extra"] = tuple(sorted(extra, key=lambda kv: kv[0]))
        return replace(defaults, **kwargs)


def _modelled_fields():
    return [f for f in fields(Settings) if f.name != "extra"]


def _coerce(field: SettingsField, value: Any) -> Any:
    if field in _STRING_FIELDS:
        if not isinstance(value, str):
            raise TypeError(f"{field.value} expects a string, got {type(value).__name__}")
        return value
    if field is SettingsField.ON_COPY_MODE:
        # raises ValueError for unknown modes
        return value if isinstance(value, OnCopyMode) else OnCopyMode(value)
    if not isinstance(value, bool):
        raise TypeError(f"{field.value} expects a bool, got {type(value).__name__}")
    return value
