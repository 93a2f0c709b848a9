"""Mutual-exclusion rules over the settings object.

Single mutation entry point for settings: views never build a new settings
value themselves, they ask the engine which returns a complete, internally
consistent snapshot (or the unchanged one plus a "capability required"
signal when the legacy strategy is requested without the capability).

Rules, in order:
 1. Advanced conversion set true forces legacy reconversion off.
 2. Legacy reconversion set true requires a confirmed capability; without it
    the input is returned unchanged and ``capability_required`` is set.
 3. Accepted legacy reconversion forces advanced conversion off.
 4. Any other change is applied as-is.
 5. Either strategy on disables the primary text fields (derived only).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from domain.settings import Settings, SettingsField

__all__ = ["ApplyResult", "ConstraintEngine", "PRIMARY_FIELDS"]

PRIMARY_FIELDS = (
    SettingsField.PREFIX,
    SettingsField.SPLIT,
    SettingsField.COMMAND,
    SettingsField.IGNORE_PREFIX,
)


@dataclass(frozen=True)
class ApplyResult:
    settings: Settings
    capability_required: bool = False

    @property
    def accepted(self) -> bool:
        return not self.capability_required


class ConstraintEngine:
    def apply(
        self,
        current: Settings,
        field: SettingsField,
        value: Any,
        *,
        capability_available: bool = False,
    ) -> ApplyResult:
        """Apply ``field = value`` to ``current`` under the exclusion rules.

        ``capability_available`` must come from a fresh backend check; it is
        consulted only when the legacy strategy is being switched on.
        """
        field = SettingsField(field)
        if field is SettingsField.USE_ADVANCED_CONVERSION and value is True:
            updated = current.with_field(field, True).with_field(
                SettingsField.USE_LEGACY_RECONVERT, False
            )
            return ApplyResult(updated)
        if field is SettingsField.USE_LEGACY_RECONVERT and value is True:
            if not capability_available:
                return ApplyResult(current, capability_required=True)
            updated = current.with_field(field, True).with_field(
                SettingsField.USE_ADVANCED_CONVERSION, False
            )
            return ApplyResult(updated)
        updated = current.with_field(field, value)
        if updated.exclusive_conflict():
            # only reachable from an inconsistent input snapshot
            updated = updated.with_field(SettingsField.USE_LEGACY_RECONVERT, False)
        return ApplyResult(updated)

    @staticmethod
    def primary_fields_disabled(settings: Settings) -> bool:
        return settings.use_legacy_reconvert or settings.use_advanced_conversion

    @classmethod
    def prefix_disabled(cls, settings: Settings) -> bool:
        return settings.ignore_prefix or cls.primary_fields_disabled(settings)

    @classmethod
    def disabled_fields(cls, settings: Settings) -> frozenset[SettingsField]:
        disabled: set[SettingsField] = set()
        if cls.primary_fields_disabled(settings):
            disabled.update(PRIMARY_FIELDS)
        if cls.prefix_disabled(settings):
            disabled.add(SettingsField.PREFIX)
        return frozenset(disabled)
