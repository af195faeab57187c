"""Exceptions raised by the tactic and drill services and mapped to HTTP by the blueprints."""
from __future__ import annotations

from dataclasses import dataclass

from clubportal.tactics.cascade import CascadeResetCounts


@dataclass(eq=False)
class TacticNotFoundError(LookupError):
    tactic_id: str

    def __post_init__(self) -> None:
        super().__init__(f"Tactic {self.tactic_id} not found")


@dataclass(eq=False)
class FormationNotFoundError(LookupError):
    formation_id: str

    def __post_init__(self) -> None:
        super().__init__(f"Formation {self.formation_id} not found")


class InvalidPayloadError(ValueError):
    """Payload is well-formed but breaks a tactic, drill or scope invariant."""


@dataclass(eq=False)
class FormationChangeRequiresConfirmation(RuntimeError):
    """Raised when a formation change would discard data and the caller has not confirmed."""

    tactic_id: str
    new_formation_id: str
    counts: CascadeResetCounts

    def __post_init__(self) -> None:
        super().__init__(
            f"Changing tactic {self.tactic_id} to formation {self.new_formation_id} would remove "
            f"{self.counts.override_count} position override(s), "
            f"{self.counts.relationship_count} relationship(s) and "
            f"{self.counts.principle_count} principle(s)"
        )


@dataclass(eq=False)
class DrillNotFoundError(LookupError):
    drill_id: str

    def __post_init__(self) -> None:
        super().__init__(f"Drill {self.drill_id} not found")


@dataclass(eq=False)
class DrillTemplateNotFoundError(LookupError):
    template_id: str

    def __post_init__(self) -> None:
        super().__init__(f"Drill template {self.template_id} not found")
