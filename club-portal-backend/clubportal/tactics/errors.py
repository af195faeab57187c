"""Data-integrity errors raised while resolving tactic inheritance."""
from __future__ import annotations

from dataclasses import dataclass


class TacticResolutionError(RuntimeError):
    """Base class for stored data that cannot be resolved into positions."""


@dataclass(eq=False)
class MissingFormationError(TacticResolutionError):
    """Raised when a tactic references a formation the store does not know."""

    formation_id: str
    tactic_id: str | None = None

    def __post_init__(self) -> None:
        message = f"Base formation {self.formation_id} not found"
        if self.tactic_id:
            message += f" for tactic {self.tactic_id}"
        super().__init__(message)


@dataclass(eq=False)
class FormationMismatchError(TacticResolutionError):
    """Raised when a parent tactic is built on a different base formation."""

    tactic_id: str
    parent_tactic_id: str
    formation_id: str
    parent_formation_id: str

    def __post_init__(self) -> None:
        super().__init__(
            f"Tactic {self.tactic_id} uses formation {self.formation_id} but its parent "
            f"{self.parent_tactic_id} uses {self.parent_formation_id}"
        )


@dataclass(eq=False)
class CyclicInheritanceError(TacticResolutionError):
    """Raised when a parent_tactic_id chain loops back on itself."""

    chain: tuple[str, ...]

    def __post_init__(self) -> None:
        super().__init__("Cyclic tactic inheritance: " + " -> ".join(self.chain))
