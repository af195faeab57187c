"""Effective per-position data for a tactic and its inheritance chain.

A tactic starts from the slots of its base formation, takes on everything its
parent tactic chain resolved to, and then layers its own sparse overrides on
top. Scalar fields replace what came before; key responsibilities accumulate
down the chain. The walk is done over plain records looked up by id, with a
visited set guarding against loops in stored data.
"""
from __future__ import annotations

import logging

from clubportal.tactics.errors import (
    CyclicInheritanceError,
    FormationMismatchError,
    MissingFormationError,
)
from clubportal.tactics.stores import FormationStore, TacticStore
from clubportal.tactics.types import (
    SCALAR_FIELDS,
    Formation,
    PositionOverride,
    ResolvedPosition,
    Tactic,
)

logger = logging.getLogger(__name__)


class TacticResolver:
    """Resolves tactics against injected formation and tactic stores.

    The resolver holds no state of its own beyond the two stores, so one
    instance can serve concurrent callers as long as the stored records are
    not mutated mid-call.
    """

    def __init__(self, formations: FormationStore, tactics: TacticStore):
        self.formations = formations
        self.tactics = tactics

    def get_formation(self, tactic: Tactic) -> Formation:
        formation = self.formations.get_formation_by_id(tactic.parent_formation_id)
        if formation is None:
            raise MissingFormationError(formation_id=tactic.parent_formation_id, tactic_id=tactic.id)
        return formation

    def resolve_positions(self, tactic: Tactic) -> list[ResolvedPosition]:
        """Return one resolved position per formation slot, in slot order.

        Raises MissingFormationError, FormationMismatchError or
        CyclicInheritanceError when the stored chain is inconsistent.
        """
        formation = self.get_formation(tactic)
        positions = [
            ResolvedPosition(
                label=slot.label,
                x=slot.default_x,
                y=slot.default_y,
                source_formation_id=formation.id,
            )
            for slot in formation.slots
        ]

        for link in self.inheritance_chain(tactic):
            _apply_overrides(positions, link)
        return positions

    def resolve_parent_positions(self, tactic: Tactic) -> list[ResolvedPosition] | None:
        """Resolve what the parent chain alone produces, or None without a parent."""
        if not tactic.parent_tactic_id:
            return None
        parent = self.tactics.get_tactic_by_id(tactic.parent_tactic_id)
        if parent is None:
            return None
        if parent.parent_formation_id != tactic.parent_formation_id:
            raise FormationMismatchError(
                tactic_id=tactic.id,
                parent_tactic_id=parent.id,
                formation_id=tactic.parent_formation_id,
                parent_formation_id=parent.parent_formation_id,
            )
        return self.resolve_positions(parent)

    def inheritance_chain(self, tactic: Tactic) -> list[Tactic]:
        """Return the tactic's ancestry ordered root first, ending with ``tactic``."""
        chain = [tactic]
        visited = {tactic.id}
        current = tactic
        while current.parent_tactic_id:
            parent = self.tactics.get_tactic_by_id(current.parent_tactic_id)
            if parent is None:
                logger.warning(
                    "Parent tactic %s of tactic %s not found; resolving from the base formation",
                    current.parent_tactic_id,
                    current.id,
                )
                break
            if parent.id in visited:
                raise CyclicInheritanceError(chain=tuple(t.id for t in chain) + (parent.id,))
            if parent.parent_formation_id != current.parent_formation_id:
                raise FormationMismatchError(
                    tactic_id=current.id,
                    parent_tactic_id=parent.id,
                    formation_id=current.parent_formation_id,
                    parent_formation_id=parent.parent_formation_id,
                )
            visited.add(parent.id)
            chain.append(parent)
            current = parent

        chain.reverse()
        logger.debug("Resolving tactic %s through chain %s", tactic.id, [t.id for t in chain])
        return chain


def _apply_overrides(positions: list[ResolvedPosition], tactic: Tactic) -> None:
    limit = min(len(positions), tactic.squad_size)
    for index in sorted(tactic.position_overrides):
        override = tactic.position_overrides[index]
        if index < 0 or index >= limit:
            logger.warning(
                "Skipping override at index %s for tactic %s (squad size %s)",
                index,
                tactic.id,
                limit,
            )
            continue
        updated = _merge(positions[index], override, tactic.id)
        if updated is not None:
            positions[index] = updated


def _merge(position: ResolvedPosition, override: PositionOverride, tactic_id: str) -> ResolvedPosition | None:
    if override.is_empty():
        return None

    merged = position.copy()
    for name in SCALAR_FIELDS:
        value = getattr(override, name)
        if value is not None:
            setattr(merged, name, value)
    if override.key_responsibilities is not None:
        merged.key_responsibilities = merged.key_responsibilities + list(override.key_responsibilities)
    if tactic_id not in merged.overridden_by:
        merged.overridden_by = merged.overridden_by + [tactic_id]
    return merged
