"""Tactic persistence glue around the inheritance engine.

Rows are loaded through SQLAlchemy, turned into engine records, resolved, and
the results serialised back to JSON-ready dicts for the blueprints. All writes
go through here so index invariants are checked in one place.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from flask import current_app
from pydantic import BaseModel, ConfigDict, Field

from clubportal.models.club import _new_id, db, scope_columns, scope_exists
from clubportal.models.formation import Formation, Tactic
from clubportal.services.errors import (
    FormationChangeRequiresConfirmation,
    FormationNotFoundError,
    InvalidPayloadError,
    TacticNotFoundError,
)
from clubportal.tactics.audit import OverrideAuditor, clear_override
from clubportal.tactics.cascade import FormationChangePlan
from clubportal.tactics.errors import TacticResolutionError
from clubportal.tactics.resolver import TacticResolver
from clubportal.tactics.scope import Scope, Visibility, classify, partition_by_scope, scope_from_ids
from clubportal.tactics.types import (
    OVERRIDE_FIELDS,
    PositionOverride,
    Principle,
    Relationship,
    ResolvedPosition,
    Tactic as TacticRecord,
    overrides_to_json,
)

logger = logging.getLogger(__name__)

Direction = Literal['defensive', 'neutral', 'attacking']
RelationshipType = Literal['passing-lane', 'overlap', 'press-trigger', 'support', 'cover', 'combination']


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------

class PositionOverridePayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    x: Optional[float] = Field(None, ge=0, le=100, description="Horizontal position, % of pitch width")
    y: Optional[float] = Field(None, ge=0, le=100, description="Vertical position, % of pitch length")
    direction: Optional[Direction] = None
    role_description: Optional[str] = Field(None, max_length=200)
    key_responsibilities: Optional[List[str]] = None

    def to_override(self) -> PositionOverride:
        return PositionOverride.from_dict(self.model_dump(exclude_none=True))


class RelationshipPayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    from_index: int = Field(ge=0)
    to_index: int = Field(ge=0)
    type: RelationshipType
    description: str = ''

    def to_relationship(self) -> Relationship:
        return Relationship(
            from_index=self.from_index,
            to_index=self.to_index,
            type=self.type,
            description=self.description,
        )


class PrinciplePayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    title: str = Field(min_length=1, max_length=150)
    description: str = ''
    position_indices: List[int] = Field(default_factory=list)

    def to_principle(self) -> Principle:
        return Principle(
            title=self.title.strip(),
            description=self.description,
            position_indices=tuple(self.position_indices),
        )


class ScopePayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    club_id: str = Field(min_length=1)
    age_group_id: Optional[str] = None
    team_id: Optional[str] = None


class TacticCreatePayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    name: str = Field(min_length=1, max_length=150)
    parent_formation_id: str = Field(min_length=1)
    parent_tactic_id: Optional[str] = None
    scope: ScopePayload
    summary: Optional[str] = None
    style: Optional[str] = Field(None, max_length=50)
    tags: List[str] = Field(default_factory=list)
    position_overrides: Dict[int, PositionOverridePayload] = Field(default_factory=dict)
    relationships: List[RelationshipPayload] = Field(default_factory=list)
    principles: List[PrinciplePayload] = Field(default_factory=list)


class TacticUpdatePayload(BaseModel):
    """Partial update. ``position_overrides``, ``relationships`` and ``principles`` replace the stored sets."""

    model_config = ConfigDict(extra='ignore')

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    parent_formation_id: Optional[str] = None
    summary: Optional[str] = None
    style: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[str]] = None
    position_overrides: Optional[Dict[int, PositionOverridePayload]] = None
    relationships: Optional[List[RelationshipPayload]] = None
    principles: Optional[List[PrinciplePayload]] = None


# ---------------------------------------------------------------------------
# Stores and caching
# ---------------------------------------------------------------------------

class SqlFormationStore:
    """Formation lookups for one unit of work."""

    def __init__(self, session=None):
        self.session = session or db.session
        self._records = {}

    def get_formation_by_id(self, formation_id):
        if formation_id not in self._records:
            row = self.session.get(Formation, formation_id)
            self._records[formation_id] = row.to_record() if row else None
        return self._records[formation_id]


class SqlTacticStore:
    """Tactic lookups for one unit of work.

    ``pending`` records shadow stored rows, so a write can be validated against
    the chain it is about to produce before anything is committed.
    """

    def __init__(self, session=None, pending: Optional[Dict[str, TacticRecord]] = None):
        self.session = session or db.session
        self._records = dict(pending or {})

    def get_tactic_by_id(self, tactic_id):
        if tactic_id not in self._records:
            row = self.session.get(Tactic, tactic_id)
            self._records[tactic_id] = row.to_record() if row else None
        return self._records[tactic_id]


class ResolutionCache:
    """Bounded LRU of resolved positions keyed on a chain's (id, updated_at) pairs."""

    def __init__(self, maxsize: int = 256):
        self.maxsize = maxsize
        self._entries: OrderedDict = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key) -> Optional[List[ResolvedPosition]]:
        with self._lock:
            positions = self._entries.get(key)
            if positions is None:
                return None
            self._entries.move_to_end(key)
        return [position.copy() for position in positions]

    def put(self, key, positions: List[ResolvedPosition]) -> None:
        with self._lock:
            self._entries[key] = [position.copy() for position in positions]
            self._entries.move_to_end(key)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def get_resolution_cache() -> ResolutionCache:
    cache = current_app.extensions.get('clubportal_resolution_cache')
    if cache is None:
        maxsize = int(current_app.config.get('TACTIC_RESOLUTION_CACHE_SIZE', 256))
        cache = current_app.extensions.setdefault('clubportal_resolution_cache', ResolutionCache(maxsize))
    return cache


def build_engine(pending: Optional[Dict[str, TacticRecord]] = None) -> tuple[TacticResolver, OverrideAuditor]:
    resolver = TacticResolver(SqlFormationStore(), SqlTacticStore(pending=pending))
    return resolver, OverrideAuditor(resolver)


def _chain_key(resolver: TacticResolver, record: TacticRecord) -> tuple:
    return tuple(
        (link.id, link.updated_at.isoformat() if link.updated_at else None, link.parent_formation_id)
        for link in resolver.inheritance_chain(record)
    )


def resolve_with_cache(resolver: TacticResolver, record: TacticRecord) -> List[ResolvedPosition]:
    cache = get_resolution_cache()
    key = _chain_key(resolver, record)
    positions = cache.get(key)
    if positions is None:
        positions = resolver.resolve_positions(record)
        cache.put(key, positions)
    else:
        logger.debug("Resolution cache hit for tactic %s", record.id)
    return positions


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_row(tactic_id: str) -> Tactic:
    row = db.session.get(Tactic, tactic_id)
    if row is None:
        raise TacticNotFoundError(tactic_id=tactic_id)
    return row


def _get_formation_record(formation_id: str):
    row = db.session.get(Formation, formation_id)
    if row is None:
        raise FormationNotFoundError(formation_id=formation_id)
    return row.to_record()


def _validate_indices(record: TacticRecord) -> None:
    for index in record.position_overrides:
        if not 0 <= index < record.squad_size:
            raise InvalidPayloadError(
                f"Position override index {index} is outside squad size {record.squad_size}"
            )
    for rel in record.relationships:
        for index in (rel.from_index, rel.to_index):
            if not 0 <= index < record.squad_size:
                raise InvalidPayloadError(
                    f"Relationship index {index} is outside squad size {record.squad_size}"
                )
    for principle in record.principles:
        for index in principle.position_indices:
            if not 0 <= index < record.squad_size:
                raise InvalidPayloadError(
                    f"Principle index {index} is outside squad size {record.squad_size}"
                )


def _authored_overrides(items) -> Dict[int, PositionOverride]:
    """Override payloads as engine entries, dropping entries with no authored field."""
    overrides = {index: item.to_override() for index, item in items.items()}
    return {index: override for index, override in overrides.items() if not override.is_empty()}


def _child_ids(tactic_id: str) -> List[str]:
    rows = db.session.query(Tactic.id).filter(Tactic.parent_tactic_id == tactic_id).all()
    return [row[0] for row in rows]


def _check_resolvable(record: TacticRecord) -> None:
    """Refuse writes that would store a tactic the engine cannot resolve."""
    resolver, _ = build_engine(pending={record.id: record})
    try:
        resolver.resolve_positions(record)
    except TacticResolutionError as exc:
        raise InvalidPayloadError(str(exc)) from exc


def _write_record(row: Tactic, record: TacticRecord) -> None:
    row.name = record.name
    row.parent_formation_id = record.parent_formation_id
    row.parent_tactic_id = record.parent_tactic_id
    row.squad_size = record.squad_size
    row.position_overrides = overrides_to_json(record.position_overrides)
    row.relationships = [rel.to_dict() for rel in record.relationships]
    row.principles = [principle.to_dict() for principle in record.principles]
    row.summary = record.summary
    row.style = record.style
    row.tags = list(record.tags)
    row.updated_at = record.updated_at or datetime.now(timezone.utc)


def _detail(row: Tactic) -> dict:
    record = row.to_record()
    resolver, auditor = build_engine()
    positions = resolve_with_cache(resolver, record)
    overridden = auditor.overridden_fields(record)

    resolved = []
    for index, position in enumerate(positions):
        item = position.to_dict()
        item['index'] = index
        item['overridden_fields'] = overridden.get(index, [])
        resolved.append(item)

    data = row.to_dict()
    data['resolved_positions'] = resolved
    data['overrides'] = [entry.to_dict() for entry in auditor.list_overrides(record)]
    return data


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def list_formations(squad_size: Optional[int] = None) -> List[dict]:
    query = Formation.query
    if squad_size:
        query = query.filter_by(squad_size=squad_size)
    return [f.to_dict() for f in query.order_by(Formation.squad_size.desc(), Formation.name).all()]


def list_tactics_for_scope(viewer_scope: Scope) -> dict:
    """Tactics visible at ``viewer_scope``, split into the scope's own and inherited ones."""
    rows = Tactic.query.filter_by(club_id=viewer_scope.club_id).all()
    partition = partition_by_scope(rows, viewer_scope)
    return {
        'scope': viewer_scope.to_dict(),
        'scope_tactics': [row.to_summary_dict() for row in partition.own],
        'inherited_tactics': [row.to_summary_dict() for row in partition.inherited],
        'total_count': partition.total_count,
    }


def get_tactic_detail(tactic_id: str) -> dict:
    return _detail(_get_row(tactic_id))


def list_tactic_overrides(tactic_id: str) -> List[dict]:
    record = _get_row(tactic_id).to_record()
    _, auditor = build_engine()
    return [entry.to_dict() for entry in auditor.list_overrides(record)]


def preview_formation_change(tactic_id: str, formation_id: str) -> dict:
    """Counts of what switching to ``formation_id`` would discard, without changing anything."""
    record = _get_row(tactic_id).to_record()
    plan = FormationChangePlan.prepare(record, _get_formation_record(formation_id))
    data = plan.counts.to_dict()
    data['requires_confirmation'] = plan.needs_confirmation
    return data


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def create_tactic(data: dict) -> dict:
    payload = TacticCreatePayload.model_validate(data)
    try:
        scope = scope_from_ids(payload.scope.club_id, payload.scope.age_group_id, payload.scope.team_id)
    except ValueError as exc:
        raise InvalidPayloadError(str(exc)) from exc
    if not scope_exists(scope):
        raise InvalidPayloadError("Scope does not match an existing club, age group and team")

    formation = _get_formation_record(payload.parent_formation_id)

    if payload.parent_tactic_id:
        parent_row = db.session.get(Tactic, payload.parent_tactic_id)
        if parent_row is None:
            raise InvalidPayloadError(f"Parent tactic {payload.parent_tactic_id} not found")
        if parent_row.parent_formation_id != formation.id:
            raise InvalidPayloadError("Parent tactic must use the same base formation")
        if classify(parent_row.scope, scope) is Visibility.INVISIBLE:
            raise InvalidPayloadError("Parent tactic is not visible from this scope")

    now = datetime.now(timezone.utc)
    row = Tactic(id=_new_id(), name=payload.name.strip(), **scope_columns(scope))
    record = TacticRecord(
        id=row.id,
        name=payload.name.strip(),
        parent_formation_id=formation.id,
        parent_tactic_id=payload.parent_tactic_id,
        squad_size=formation.squad_size,
        scope=scope,
        position_overrides=_authored_overrides(payload.position_overrides),
        relationships=tuple(item.to_relationship() for item in payload.relationships),
        principles=tuple(item.to_principle() for item in payload.principles),
        summary=payload.summary,
        style=payload.style,
        tags=tuple(payload.tags),
        created_at=now,
        updated_at=now,
    )
    _validate_indices(record)
    _check_resolvable(record)

    _write_record(row, record)
    row.created_at = now
    db.session.add(row)
    db.session.commit()
    logger.info("Created tactic %s (%s) at %s scope", row.id, row.name, scope.type)
    return _detail(row)


def update_tactic(tactic_id: str, data: dict, confirm_reset: bool = False) -> dict:
    """Apply a partial update.

    A change of ``parent_formation_id`` goes through the cascade reset: if it
    would discard overrides, relationships or principles and ``confirm_reset`` is not set,
    FormationChangeRequiresConfirmation is raised and nothing is written.
    """
    row = _get_row(tactic_id)
    payload = TacticUpdatePayload.model_validate(data)
    fields = payload.model_fields_set
    record = row.to_record()

    new_formation_id = payload.parent_formation_id
    if new_formation_id and new_formation_id != record.parent_formation_id:
        if record.parent_tactic_id:
            raise InvalidPayloadError("A tactic that inherits from another tactic cannot change formation")
        children = _child_ids(tactic_id)
        if children:
            raise InvalidPayloadError(
                f"Tactic has {len(children)} inheriting tactic(s); change their parent before changing formation"
            )
        plan = FormationChangePlan.prepare(record, _get_formation_record(new_formation_id))
        if plan.needs_confirmation and not confirm_reset:
            raise FormationChangeRequiresConfirmation(
                tactic_id=tactic_id,
                new_formation_id=new_formation_id,
                counts=plan.counts,
            )
        record = plan.commit()
        logger.info(
            "Tactic %s formation reset discarded %s override(s), %s relationship(s), %s principle(s)",
            tactic_id,
            plan.counts.override_count,
            plan.counts.relationship_count,
            plan.counts.principle_count,
        )

    changes = {}
    if 'name' in fields and payload.name:
        changes['name'] = payload.name.strip()
    if 'summary' in fields:
        changes['summary'] = payload.summary
    if 'style' in fields:
        changes['style'] = payload.style
    if 'tags' in fields:
        changes['tags'] = tuple(payload.tags or ())
    if 'position_overrides' in fields:
        changes['position_overrides'] = _authored_overrides(payload.position_overrides or {})
    if 'relationships' in fields:
        changes['relationships'] = tuple(item.to_relationship() for item in payload.relationships or [])
    if 'principles' in fields:
        changes['principles'] = tuple(item.to_principle() for item in payload.principles or [])
    changes['updated_at'] = datetime.now(timezone.utc)
    record = replace(record, **changes)
    _validate_indices(record)
    _check_resolvable(record)

    _write_record(row, record)
    db.session.commit()
    logger.info("Updated tactic %s fields=%s", tactic_id, sorted(fields))
    return _detail(row)


def merge_position_override(tactic_id: str, position_index: int, data: dict) -> dict:
    """Merge the authored fields of ``data`` into one slot's override entry."""
    row = _get_row(tactic_id)
    patch = PositionOverridePayload.model_validate(data).to_override()
    record = row.to_record()
    if not 0 <= position_index < record.squad_size:
        raise InvalidPayloadError(
            f"Position override index {position_index} is outside squad size {record.squad_size}"
        )

    existing = record.position_overrides.get(position_index, PositionOverride())
    merged = {name: getattr(existing, name) for name in OVERRIDE_FIELDS}
    merged.update({name: getattr(patch, name) for name in patch.present_fields()})
    overrides = dict(record.position_overrides)
    merged_override = PositionOverride(**merged)
    if merged_override.is_empty():
        overrides.pop(position_index, None)
    else:
        overrides[position_index] = merged_override

    record = replace(record, position_overrides=overrides, updated_at=datetime.now(timezone.utc))
    _write_record(row, record)
    db.session.commit()
    return _detail(row)


def reset_override(tactic_id: str, position_index: int, field: Optional[str] = None) -> dict:
    """Drop one authored field (or the whole slot entry) so the slot inherits again."""
    row = _get_row(tactic_id)
    record = row.to_record()
    try:
        overrides = clear_override(record.position_overrides, position_index, field)
    except ValueError as exc:
        raise InvalidPayloadError(str(exc)) from exc

    if overrides != dict(record.position_overrides):
        record = replace(record, position_overrides=overrides, updated_at=datetime.now(timezone.utc))
        _write_record(row, record)
        db.session.commit()
        logger.info("Reset override on tactic %s index=%s field=%s", tactic_id, position_index, field or '*')
    return _detail(row)


def delete_tactic(tactic_id: str) -> dict:
    row = _get_row(tactic_id)
    children = _child_ids(tactic_id)
    db.session.delete(row)
    db.session.commit()
    if children:
        logger.warning("Deleted tactic %s; %s child tactic(s) now have a dangling parent", tactic_id, len(children))
    return {'deleted': tactic_id, 'orphaned_children': children}
