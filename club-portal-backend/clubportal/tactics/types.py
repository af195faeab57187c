"""Plain data records the tactic engine works on.

Formations and tactics arrive from a store as these records; the engine never
touches ORM rows or request payloads directly. Everything here is immutable
except ``ResolvedPosition``, which the resolver builds fresh for each call.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from clubportal.tactics.scope import Scope, scope_from_dict

DIRECTIONS = ('defensive', 'neutral', 'attacking')
RELATIONSHIP_TYPES = ('passing-lane', 'overlap', 'press-trigger', 'support', 'cover', 'combination')

# Order matters: audit lists report fields in this order.
OVERRIDE_FIELDS = ('x', 'y', 'direction', 'role_description', 'key_responsibilities')
SCALAR_FIELDS = ('x', 'y', 'direction', 'role_description')


@dataclass(frozen=True, slots=True)
class FormationSlot:
    label: str
    default_x: float
    default_y: float

    def to_dict(self) -> dict[str, Any]:
        return {'label': self.label, 'x': self.default_x, 'y': self.default_y}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FormationSlot':
        return cls(
            label=data.get('label') or data.get('position') or '',
            default_x=float(data.get('x', data.get('default_x', 0))),
            default_y=float(data.get('y', data.get('default_y', 0))),
        )


@dataclass(frozen=True, slots=True)
class Formation:
    id: str
    name: str
    squad_size: int
    slots: tuple[FormationSlot, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'squad_size': self.squad_size,
            'slots': [slot.to_dict() for slot in self.slots],
        }


@dataclass(frozen=True, slots=True)
class PositionOverride:
    """Sparse patch for one slot.

    ``None`` means the field was not authored. An empty
    ``key_responsibilities`` tuple is still an authored value.
    """

    x: float | None = None
    y: float | None = None
    direction: str | None = None
    role_description: str | None = None
    key_responsibilities: tuple[str, ...] | None = None

    def present_fields(self) -> tuple[str, ...]:
        return tuple(name for name in OVERRIDE_FIELDS if getattr(self, name) is not None)

    def has(self, field_name: str) -> bool:
        return field_name in OVERRIDE_FIELDS and getattr(self, field_name) is not None

    def value_of(self, field_name: str) -> Any:
        value = getattr(self, field_name)
        if field_name == 'key_responsibilities' and value is not None:
            return list(value)
        return value

    def without(self, field_name: str) -> 'PositionOverride':
        data = {name: getattr(self, name) for name in OVERRIDE_FIELDS}
        data[field_name] = None
        return PositionOverride(**data)

    def is_empty(self) -> bool:
        return not self.present_fields()

    def to_dict(self) -> dict[str, Any]:
        return {name: self.value_of(name) for name in self.present_fields()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PositionOverride':
        responsibilities = data.get('key_responsibilities')
        return cls(
            x=float(data['x']) if data.get('x') is not None else None,
            y=float(data['y']) if data.get('y') is not None else None,
            direction=data.get('direction'),
            role_description=data.get('role_description'),
            key_responsibilities=tuple(responsibilities) if responsibilities is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Relationship:
    from_index: int
    to_index: int
    type: str
    description: str = ''

    def to_dict(self) -> dict[str, Any]:
        return {
            'from_index': self.from_index,
            'to_index': self.to_index,
            'type': self.type,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Relationship':
        return cls(
            from_index=int(data['from_index']),
            to_index=int(data['to_index']),
            type=data.get('type') or 'support',
            description=data.get('description') or '',
        )


@dataclass(frozen=True, slots=True)
class Principle:
    """A coaching principle pinned to a set of slots."""

    title: str
    description: str = ''
    position_indices: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            'title': self.title,
            'description': self.description,
            'position_indices': list(self.position_indices),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Principle':
        return cls(
            title=data.get('title') or '',
            description=data.get('description') or '',
            position_indices=tuple(int(i) for i in data.get('position_indices') or ()),
        )


@dataclass(frozen=True, slots=True)
class Tactic:
    id: str
    name: str
    parent_formation_id: str
    squad_size: int
    scope: Scope
    parent_tactic_id: str | None = None
    position_overrides: Mapping[int, PositionOverride] = field(default_factory=dict)
    relationships: tuple[Relationship, ...] = ()
    principles: tuple[Principle, ...] = ()
    summary: str | None = None
    style: str | None = None
    tags: tuple[str, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'parent_formation_id': self.parent_formation_id,
            'parent_tactic_id': self.parent_tactic_id,
            'squad_size': self.squad_size,
            'scope': self.scope.to_dict(),
            'position_overrides': overrides_to_json(self.position_overrides),
            'relationships': [rel.to_dict() for rel in self.relationships],
            'principles': [principle.to_dict() for principle in self.principles],
            'summary': self.summary,
            'style': self.style,
            'tags': list(self.tags),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Tactic':
        return cls(
            id=data['id'],
            name=data.get('name') or '',
            parent_formation_id=data['parent_formation_id'],
            parent_tactic_id=data.get('parent_tactic_id'),
            squad_size=int(data['squad_size']),
            scope=scope_from_dict(data['scope']),
            position_overrides=overrides_from_json(data.get('position_overrides')),
            relationships=tuple(Relationship.from_dict(rel) for rel in data.get('relationships') or []),
            principles=tuple(Principle.from_dict(p) for p in data.get('principles') or []),
            summary=data.get('summary'),
            style=data.get('style'),
            tags=tuple(data.get('tags') or ()),
        )


@dataclass(slots=True)
class ResolvedPosition:
    label: str
    x: float
    y: float
    source_formation_id: str
    direction: str | None = None
    role_description: str | None = None
    key_responsibilities: list[str] = field(default_factory=list)
    overridden_by: list[str] = field(default_factory=list)

    def copy(self) -> 'ResolvedPosition':
        return ResolvedPosition(
            label=self.label,
            x=self.x,
            y=self.y,
            source_formation_id=self.source_formation_id,
            direction=self.direction,
            role_description=self.role_description,
            key_responsibilities=list(self.key_responsibilities),
            overridden_by=list(self.overridden_by),
        )

    def value_of(self, field_name: str) -> Any:
        value = getattr(self, field_name)
        return list(value) if isinstance(value, list) else value

    def to_dict(self) -> dict[str, Any]:
        return {
            'label': self.label,
            'x': self.x,
            'y': self.y,
            'direction': self.direction,
            'role_description': self.role_description,
            'key_responsibilities': list(self.key_responsibilities),
            'source_formation_id': self.source_formation_id,
            'overridden_by': list(self.overridden_by),
        }


@dataclass(frozen=True, slots=True)
class OverrideRecord:
    position_index: int
    position_label: str
    field: str
    original_value: Any
    overridden_value: Any
    tactic_id: str
    tactic_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            'position_index': self.position_index,
            'position_label': self.position_label,
            'field': self.field,
            'original_value': self.original_value,
            'overridden_value': self.overridden_value,
            'tactic_id': self.tactic_id,
            'tactic_name': self.tactic_name,
        }


def overrides_from_json(raw: Mapping[Any, Any] | None) -> dict[int, PositionOverride]:
    """Parse a JSON override map. JSON object keys arrive as strings."""
    overrides: dict[int, PositionOverride] = {}
    for key, value in (raw or {}).items():
        overrides[int(key)] = value if isinstance(value, PositionOverride) else PositionOverride.from_dict(value or {})
    return overrides


def overrides_to_json(overrides: Mapping[int, PositionOverride]) -> dict[str, dict[str, Any]]:
    return {str(index): overrides[index].to_dict() for index in sorted(overrides)}
