"""Lookup interfaces the engine resolves ids through."""
from __future__ import annotations

from typing import Iterable, Protocol

from clubportal.tactics.types import Formation, Tactic


class FormationStore(Protocol):
    def get_formation_by_id(self, formation_id: str) -> Formation | None:
        ...


class TacticStore(Protocol):
    def get_tactic_by_id(self, tactic_id: str) -> Tactic | None:
        ...


class MappingFormationStore:
    """Dict-backed formation store; the caller owns its lifetime."""

    def __init__(self, formations: Iterable[Formation] = ()):
        self._formations = {formation.id: formation for formation in formations}

    def add(self, formation: Formation) -> None:
        self._formations[formation.id] = formation

    def get_formation_by_id(self, formation_id: str) -> Formation | None:
        return self._formations.get(formation_id)


class MappingTacticStore:
    """Dict-backed tactic store; the caller owns its lifetime."""

    def __init__(self, tactics: Iterable[Tactic] = ()):
        self._tactics = {tactic.id: tactic for tactic in tactics}

    def add(self, tactic: Tactic) -> None:
        self._tactics[tactic.id] = tactic

    def get_tactic_by_id(self, tactic_id: str) -> Tactic | None:
        return self._tactics.get(tactic_id)
