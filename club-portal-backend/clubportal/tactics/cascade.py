"""Swapping a tactic's base formation.

Overrides, relationships and principles are addressed by slot index, so they
only mean something against the formation they were authored for. A formation
change therefore throws all of them away. Counting what will be lost is a
separate step that callers run first, so they can ask for confirmation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from clubportal.tactics.types import Formation, Tactic

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CascadeResetCounts:
    override_count: int
    relationship_count: int
    principle_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.override_count == 0 and self.relationship_count == 0 and self.principle_count == 0

    def to_dict(self) -> dict[str, int]:
        return {
            'override_count': self.override_count,
            'relationship_count': self.relationship_count,
            'principle_count': self.principle_count,
        }


def count_discarded(tactic: Tactic) -> CascadeResetCounts:
    """How much authored slot data a formation change would destroy.

    Override entries with no authored fields carry nothing and are not counted.
    """
    return CascadeResetCounts(
        override_count=sum(1 for override in tactic.position_overrides.values() if not override.is_empty()),
        relationship_count=len(tactic.relationships),
        principle_count=len(tactic.principles),
    )


def apply_formation_change(tactic: Tactic, new_formation: Formation) -> Tactic:
    """Return a copy of ``tactic`` rebased onto ``new_formation``.

    Overrides, relationships and principles are dropped unconditionally and the
    squad size follows the new formation. Rebasing onto the current formation
    is a no-op.
    """
    if new_formation.id == tactic.parent_formation_id:
        return tactic

    logger.info(
        "Rebasing tactic %s from formation %s to %s",
        tactic.id,
        tactic.parent_formation_id,
        new_formation.id,
    )
    return replace(
        tactic,
        parent_formation_id=new_formation.id,
        squad_size=new_formation.squad_size,
        position_overrides={},
        relationships=(),
        principles=(),
        updated_at=datetime.now(timezone.utc),
    )


@dataclass(frozen=True, slots=True)
class FormationChangePlan:
    """A pending formation change together with what it will discard."""

    tactic: Tactic
    new_formation: Formation
    counts: CascadeResetCounts

    @classmethod
    def prepare(cls, tactic: Tactic, new_formation: Formation) -> 'FormationChangePlan':
        if new_formation.id == tactic.parent_formation_id:
            counts = CascadeResetCounts(override_count=0, relationship_count=0)
        else:
            counts = count_discarded(tactic)
        return cls(tactic=tactic, new_formation=new_formation, counts=counts)

    @property
    def is_noop(self) -> bool:
        return self.new_formation.id == self.tactic.parent_formation_id

    @property
    def needs_confirmation(self) -> bool:
        return not self.is_noop and not self.counts.is_empty

    def commit(self) -> Tactic:
        return apply_formation_change(self.tactic, self.new_formation)
