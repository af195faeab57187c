"""Organisational scopes and the visibility rules that hang off them.

A resource (tactic, drill, drill template) is declared at exactly one level of
the club hierarchy. Viewers look at the catalogue from a level of their own,
and each resource is either owned by that level, inherited from an ancestor
level, or not visible at all.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, TypeVar, Union

T = TypeVar('T')


@dataclass(frozen=True, slots=True)
class ClubScope:
    club_id: str

    type = 'club'

    def __post_init__(self) -> None:
        _require_ids(self, 'club_id')

    def to_dict(self) -> dict[str, Any]:
        return {'type': self.type, 'club_id': self.club_id}


@dataclass(frozen=True, slots=True)
class AgeGroupScope:
    club_id: str
    age_group_id: str

    type = 'ageGroup'

    def __post_init__(self) -> None:
        _require_ids(self, 'club_id', 'age_group_id')

    def to_dict(self) -> dict[str, Any]:
        return {'type': self.type, 'club_id': self.club_id, 'age_group_id': self.age_group_id}


@dataclass(frozen=True, slots=True)
class TeamScope:
    club_id: str
    age_group_id: str
    team_id: str

    type = 'team'

    def __post_init__(self) -> None:
        _require_ids(self, 'club_id', 'age_group_id', 'team_id')

    def to_dict(self) -> dict[str, Any]:
        return {
            'type': self.type,
            'club_id': self.club_id,
            'age_group_id': self.age_group_id,
            'team_id': self.team_id,
        }


Scope = Union[ClubScope, AgeGroupScope, TeamScope]
SCOPE_TYPES = (ClubScope, AgeGroupScope, TeamScope)


def _require_ids(scope, *names: str) -> None:
    for name in names:
        value = getattr(scope, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError(f"{type(scope).__name__}.{name} is required")


class Visibility(enum.Enum):
    OWNED = 'owned'
    INHERITED = 'inherited'
    INVISIBLE = 'invisible'


def classify(resource_scope: Scope, viewer_scope: Scope) -> Visibility:
    """Decide how a resource declared at ``resource_scope`` appears to a viewer.

    Owned: same level, same ids. Inherited: the resource sits on a strict
    ancestor of the viewer inside the same club. Everything else is invisible,
    including a narrower resource seen from a broader level.
    """
    if not isinstance(resource_scope, SCOPE_TYPES):
        raise TypeError(f"Unsupported resource scope: {resource_scope!r}")
    if not isinstance(viewer_scope, SCOPE_TYPES):
        raise TypeError(f"Unsupported viewer scope: {viewer_scope!r}")

    if resource_scope == viewer_scope:
        return Visibility.OWNED
    if resource_scope.club_id != viewer_scope.club_id:
        return Visibility.INVISIBLE

    if isinstance(resource_scope, ClubScope):
        # Same club and not equal, so the viewer is an age group or team.
        return Visibility.INHERITED
    if isinstance(resource_scope, AgeGroupScope):
        if isinstance(viewer_scope, TeamScope) and viewer_scope.age_group_id == resource_scope.age_group_id:
            return Visibility.INHERITED
        return Visibility.INVISIBLE
    if isinstance(resource_scope, TeamScope):
        return Visibility.INVISIBLE
    raise TypeError(f"Unsupported resource scope: {resource_scope!r}")


@dataclass
class ScopedPartition(Generic[T]):
    """Resources visible at a viewer scope, split by ownership."""

    own: list[T] = field(default_factory=list)
    inherited: list[T] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.own) + len(self.inherited)


def _sort_key(name: str | None, created) -> tuple:
    # Missing creation stamps sort after dated rows with the same name.
    return ((name or '').casefold(), created is None, created if created is not None else 0)


def partition_by_scope(
    resources: Iterable[T],
    viewer_scope: Scope,
    *,
    scope_of: Callable[[T], Scope] = lambda r: r.scope,
    name_of: Callable[[T], str] = lambda r: r.name,
    created_of: Callable[[T], Any] = lambda r: getattr(r, 'created_at', None),
) -> ScopedPartition[T]:
    """Split ``resources`` into own and inherited lists for ``viewer_scope``.

    Both lists are ordered by name (case-insensitive) with ties broken by
    creation time, oldest first. Invisible resources are dropped.
    """
    own: list[tuple[tuple, T]] = []
    inherited: list[tuple[tuple, T]] = []
    for resource in resources:
        visibility = classify(scope_of(resource), viewer_scope)
        if visibility is Visibility.INVISIBLE:
            continue
        entry = (_sort_key(name_of(resource), created_of(resource)), resource)
        (own if visibility is Visibility.OWNED else inherited).append(entry)

    own.sort(key=lambda item: item[0])
    inherited.sort(key=lambda item: item[0])
    return ScopedPartition(
        own=[resource for _, resource in own],
        inherited=[resource for _, resource in inherited],
    )


def scope_from_ids(club_id: str, age_group_id: str | None = None, team_id: str | None = None) -> Scope:
    """Build the most specific scope the given ids describe."""
    if team_id:
        if not age_group_id:
            raise ValueError("team scope requires an age_group_id")
        return TeamScope(club_id=club_id, age_group_id=age_group_id, team_id=team_id)
    if age_group_id:
        return AgeGroupScope(club_id=club_id, age_group_id=age_group_id)
    return ClubScope(club_id=club_id)


def scope_from_dict(data: dict[str, Any]) -> Scope:
    """Parse the ``{"type": ...}`` JSON shape produced by ``to_dict``."""
    scope_type = (data.get('type') or '').strip()
    normalized = scope_type.replace('_', '').lower()
    if normalized == 'club':
        return ClubScope(club_id=data.get('club_id'))
    if normalized == 'agegroup':
        return AgeGroupScope(club_id=data.get('club_id'), age_group_id=data.get('age_group_id'))
    if normalized == 'team':
        return TeamScope(
            club_id=data.get('club_id'),
            age_group_id=data.get('age_group_id'),
            team_id=data.get('team_id'),
        )
    raise ValueError(f"Unknown scope type: {scope_type!r}")
