"""Which fields of a tactic are genuine overrides, and what they replaced."""
from __future__ import annotations

import logging
from typing import Mapping

from clubportal.tactics.resolver import TacticResolver
from clubportal.tactics.types import (
    OVERRIDE_FIELDS,
    OverrideRecord,
    PositionOverride,
    Tactic,
)

logger = logging.getLogger(__name__)


class OverrideAuditor:
    """Read-only audit over a tactic's authored overrides.

    Nothing here edits a tactic. Resetting a field back to its inherited value
    is a plain map edit, see ``clear_override``.
    """

    def __init__(self, resolver: TacticResolver):
        self.resolver = resolver

    def is_field_overridden(self, tactic: Tactic, position_index: int, field: str) -> bool:
        """True when ``field`` at ``position_index`` differs from what the tactic inherits.

        On a root tactic every authored field counts as an override of the base
        formation. With a parent, the authored value is compared against the
        parent chain's fully resolved value; key responsibilities compare as
        ordered lists. Absent data, including an index outside the squad,
        answers False rather than raising.
        """
        if field not in OVERRIDE_FIELDS:
            return False
        if not 0 <= position_index < self._slot_limit(tactic):
            return False
        override = tactic.position_overrides.get(position_index)
        if override is None or not override.has(field):
            return False
        if not tactic.parent_tactic_id:
            return True

        parent_positions = self.resolver.resolve_parent_positions(tactic)
        return _differs_from_parent(override, field, parent_positions, position_index)

    def overridden_fields(self, tactic: Tactic) -> dict[int, list[str]]:
        """``is_field_overridden`` for every authored field, resolving the parent chain once."""
        parent_positions = None
        if tactic.parent_tactic_id:
            parent_positions = self.resolver.resolve_parent_positions(tactic)

        limit = self._slot_limit(tactic)
        result: dict[int, list[str]] = {}
        for index in sorted(tactic.position_overrides):
            if not 0 <= index < limit:
                continue
            override = tactic.position_overrides[index]
            fields = [
                field
                for field in override.present_fields()
                if not tactic.parent_tactic_id
                or _differs_from_parent(override, field, parent_positions, index)
            ]
            if fields:
                result[index] = fields
        return result

    def list_overrides(self, tactic: Tactic) -> list[OverrideRecord]:
        """One record per authored (position, field) pair, in index then field order."""
        formation = self.resolver.get_formation(tactic)
        parent_positions = self.resolver.resolve_parent_positions(tactic)
        limit = min(len(formation.slots), tactic.squad_size)

        records: list[OverrideRecord] = []
        for index in sorted(tactic.position_overrides):
            if index < 0 or index >= limit:
                logger.debug("Ignoring stale override at index %s on tactic %s", index, tactic.id)
                continue
            override = tactic.position_overrides[index]
            slot = formation.slots[index]
            for field in override.present_fields():
                if parent_positions is not None:
                    original = parent_positions[index].value_of(field)
                elif field == 'x':
                    original = slot.default_x
                elif field == 'y':
                    original = slot.default_y
                else:
                    original = None
                records.append(
                    OverrideRecord(
                        position_index=index,
                        position_label=slot.label,
                        field=field,
                        original_value=original,
                        overridden_value=override.value_of(field),
                        tactic_id=tactic.id,
                        tactic_name=tactic.name,
                    )
                )
        return records

    def _slot_limit(self, tactic: Tactic) -> int:
        formation = self.resolver.formations.get_formation_by_id(tactic.parent_formation_id)
        if formation is None:
            return tactic.squad_size
        return min(len(formation.slots), tactic.squad_size)


def _differs_from_parent(override: PositionOverride, field: str, parent_positions, index: int) -> bool:
    if parent_positions is None:
        # Dangling parent: nothing to inherit from, so the value stands on its own.
        return True
    if not 0 <= index < len(parent_positions):
        return True
    return override.value_of(field) != parent_positions[index].value_of(field)


def clear_override(
    position_overrides: Mapping[int, PositionOverride],
    position_index: int,
    field: str | None = None,
) -> dict[int, PositionOverride]:
    """Return a copy of ``position_overrides`` with one field (or the whole entry) removed.

    An entry left with no authored fields is dropped entirely.
    """
    if field is not None and field not in OVERRIDE_FIELDS:
        raise ValueError(f"Unknown override field: {field!r}")

    updated = dict(position_overrides)
    override = updated.get(position_index)
    if override is None:
        return updated
    if field is None:
        del updated[position_index]
        return updated

    remaining = override.without(field)
    if remaining.is_empty():
        del updated[position_index]
    else:
        updated[position_index] = remaining
    return updated
