"""Drill and drill-template catalogues as seen from a club, age group or team."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clubportal.models.club import _new_id, db, scope_columns, scope_exists
from clubportal.models.drill import DRILL_CATEGORIES, Drill, DrillTemplate
from clubportal.services.errors import DrillNotFoundError, DrillTemplateNotFoundError, InvalidPayloadError
from clubportal.services.tactic_service import ScopePayload
from clubportal.tactics.scope import Scope, Visibility, classify, partition_by_scope, scope_from_ids

logger = logging.getLogger(__name__)


def _normalize_category(category: Optional[str]) -> Optional[str]:
    """Lower-cased category, or None when no filter applies ('all', blank, unknown)."""
    value = (category or '').strip().lower()
    if not value or value == 'all':
        return None
    if value not in DRILL_CATEGORIES:
        logger.debug("Ignoring unknown drill category filter %r", category)
        return None
    return value


def _matches_search(term: str, *haystacks) -> bool:
    needle = term.casefold()
    for haystack in haystacks:
        if isinstance(haystack, (list, tuple)):
            if any(needle in str(item).casefold() for item in haystack):
                return True
        elif haystack and needle in str(haystack).casefold():
            return True
    return False


def _filter(rows: Iterable, category: Optional[str], search: Optional[str], attributes_of) -> List:
    category_value = _normalize_category(category)
    term = (search or '').strip()
    selected = []
    for row in rows:
        if category_value and (row.category or '').lower() != category_value:
            continue
        if term and not _matches_search(term, row.name, row.description, attributes_of(row)):
            continue
        selected.append(row)
    return selected


DrillCategory = Literal['technical', 'tactical', 'physical', 'mental', 'mixed']
LinkType = Literal['youtube', 'instagram', 'tiktok', 'website', 'other']


def _category_input(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class DrillLinkPayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    url: str = Field(min_length=1, max_length=2000)
    title: str = Field('', max_length=200)
    type: LinkType = 'other'

    @field_validator('type', mode='before')
    @classmethod
    def _lower_type(cls, value):
        return _category_input(value)


class DrillPayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    name: str = Field(min_length=1, max_length=150)
    description: str = ''
    duration_minutes: int = Field(0, ge=0)
    category: DrillCategory = 'mixed'
    attributes: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    diagram: Optional[str] = None
    instructions: List[str] = Field(default_factory=list)
    variations: List[str] = Field(default_factory=list)
    links: List[DrillLinkPayload] = Field(default_factory=list)
    is_public: bool = False
    created_by: Optional[str] = Field(None, max_length=36)
    scope: ScopePayload

    @field_validator('category', mode='before')
    @classmethod
    def _lower_category(cls, value):
        return _category_input(value)


class DrillUpdatePayload(BaseModel):
    """Partial update. The scope a drill was created at cannot change."""

    model_config = ConfigDict(extra='ignore')

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    category: Optional[DrillCategory] = None
    attributes: Optional[List[str]] = None
    equipment: Optional[List[str]] = None
    diagram: Optional[str] = None
    instructions: Optional[List[str]] = None
    variations: Optional[List[str]] = None
    links: Optional[List[DrillLinkPayload]] = None
    is_public: Optional[bool] = None

    @field_validator('category', mode='before')
    @classmethod
    def _lower_category(cls, value):
        return _category_input(value)


class DrillTemplatePayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    name: str = Field(min_length=1, max_length=150)
    description: str = ''
    category: Optional[DrillCategory] = None
    drill_ids: List[str] = Field(default_factory=list)
    is_public: bool = False
    created_by: Optional[str] = Field(None, max_length=36)
    scope: ScopePayload

    @field_validator('category', mode='before')
    @classmethod
    def _template_category(cls, value):
        value = _category_input(value)
        return None if value in ('', 'all') else value


class DrillTemplateUpdatePayload(BaseModel):
    """Partial update. ``drill_ids`` replaces the stored list and refreshes the aggregates."""

    model_config = ConfigDict(extra='ignore')

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    category: Optional[DrillCategory] = None
    drill_ids: Optional[List[str]] = None
    is_public: Optional[bool] = None

    @field_validator('category', mode='before')
    @classmethod
    def _template_category(cls, value):
        value = _category_input(value)
        return None if value in ('', 'all') else value


def _payload_scope(payload) -> Scope:
    try:
        scope = scope_from_ids(payload.scope.club_id, payload.scope.age_group_id, payload.scope.team_id)
    except ValueError as exc:
        raise InvalidPayloadError(str(exc)) from exc
    if not scope_exists(scope):
        raise InvalidPayloadError("Scope does not match an existing club, age group and team")
    return scope


def _get_drill_row(drill_id: str) -> Drill:
    drill = db.session.get(Drill, drill_id)
    if drill is None:
        raise DrillNotFoundError(drill_id=drill_id)
    return drill


def _get_template_row(template_id: str) -> DrillTemplate:
    template = db.session.get(DrillTemplate, template_id)
    if template is None:
        raise DrillTemplateNotFoundError(template_id=template_id)
    return template


def _visible_drills(drill_ids: List[str], scope: Scope) -> List[Drill]:
    """Load ``drill_ids`` in order, refusing any drill the scope cannot see."""
    drills = []
    for drill_id in drill_ids:
        drill = db.session.get(Drill, drill_id)
        if drill is None:
            raise InvalidPayloadError(f"Drill {drill_id} not found")
        if classify(drill.scope, scope) is Visibility.INVISIBLE:
            raise InvalidPayloadError(f"Drill {drill_id} is not visible from this scope")
        drills.append(drill)
    return drills


def get_drill(drill_id: str) -> dict:
    return _get_drill_row(drill_id).to_dict()


def create_drill(data: dict) -> dict:
    payload = DrillPayload.model_validate(data)
    scope = _payload_scope(payload)
    drill = Drill(
        id=_new_id(),
        name=payload.name.strip(),
        description=payload.description,
        duration_minutes=payload.duration_minutes,
        category=payload.category,
        attributes=payload.attributes,
        equipment=payload.equipment,
        diagram=payload.diagram,
        instructions=payload.instructions,
        variations=payload.variations,
        links=[link.model_dump() for link in payload.links],
        is_public=payload.is_public,
        created_by=payload.created_by,
        created_at=datetime.now(timezone.utc),
        **scope_columns(scope),
    )
    db.session.add(drill)
    db.session.commit()
    logger.info("Created drill %s at %s scope", drill.id, scope.type)
    return drill.to_dict()


def update_drill(drill_id: str, data: dict) -> dict:
    """Apply a partial update; list fields and ``links`` replace what is stored."""
    drill = _get_drill_row(drill_id)
    payload = DrillUpdatePayload.model_validate(data)
    fields = payload.model_fields_set

    if 'name' in fields and payload.name:
        drill.name = payload.name.strip()
    if 'category' in fields and payload.category:
        drill.category = payload.category
    if 'duration_minutes' in fields and payload.duration_minutes is not None:
        drill.duration_minutes = payload.duration_minutes
    for name in ('description', 'diagram'):
        if name in fields:
            setattr(drill, name, getattr(payload, name))
    for name in ('attributes', 'equipment', 'instructions', 'variations'):
        if name in fields:
            setattr(drill, name, list(getattr(payload, name) or []))
    if 'links' in fields:
        drill.links = [link.model_dump() for link in payload.links or []]
    if 'is_public' in fields and payload.is_public is not None:
        drill.is_public = payload.is_public
    drill.updated_at = datetime.now(timezone.utc)
    if fields & {'duration_minutes', 'attributes'}:
        _refresh_templates_using(drill)

    db.session.commit()
    logger.info("Updated drill %s fields=%s", drill_id, sorted(fields))
    return drill.to_dict()


def _refresh_templates_using(drill: Drill) -> None:
    templates = DrillTemplate.query.filter_by(club_id=drill.club_id).all()
    for template in templates:
        drill_ids = template.drill_ids or []
        if drill.id not in drill_ids:
            continue
        drills = [drill if drill_id == drill.id else db.session.get(Drill, drill_id) for drill_id in drill_ids]
        template.refresh_aggregates([d for d in drills if d is not None])
        logger.debug("Refreshed aggregates on drill template %s", template.id)


def get_drill_template(template_id: str) -> dict:
    """Template with its drills expanded in template order."""
    template = _get_template_row(template_id)
    data = template.to_dict()
    drills = [db.session.get(Drill, drill_id) for drill_id in template.drill_ids or []]
    data['drills'] = [drill.to_dict() for drill in drills if drill is not None]
    return data


def create_drill_template(data: dict) -> dict:
    """Create a template; every drill it references must be visible from the template's scope."""
    payload = DrillTemplatePayload.model_validate(data)
    scope = _payload_scope(payload)
    drills = _visible_drills(payload.drill_ids, scope)

    template = DrillTemplate(
        id=_new_id(),
        name=payload.name.strip(),
        description=payload.description,
        category=payload.category,
        drill_ids=list(payload.drill_ids),
        is_public=payload.is_public,
        created_by=payload.created_by,
        created_at=datetime.now(timezone.utc),
        **scope_columns(scope),
    )
    template.refresh_aggregates(drills)
    db.session.add(template)
    db.session.commit()
    logger.info("Created drill template %s with %s drill(s)", template.id, len(drills))
    return template.to_dict()


def update_drill_template(template_id: str, data: dict) -> dict:
    """Apply a partial update.

    A new ``drill_ids`` list goes through the same visibility check as create,
    against the template's own scope, and the cached aggregates are rebuilt.
    """
    template = _get_template_row(template_id)
    payload = DrillTemplateUpdatePayload.model_validate(data)
    fields = payload.model_fields_set

    if 'drill_ids' in fields:
        drill_ids = list(payload.drill_ids or [])
        drills = _visible_drills(drill_ids, template.scope)
        template.drill_ids = drill_ids
        template.refresh_aggregates(drills)
    if 'name' in fields and payload.name:
        template.name = payload.name.strip()
    if 'description' in fields:
        template.description = payload.description or ''
    if 'category' in fields:
        template.category = payload.category
    if 'is_public' in fields and payload.is_public is not None:
        template.is_public = payload.is_public
    template.updated_at = datetime.now(timezone.utc)

    db.session.commit()
    logger.info("Updated drill template %s fields=%s", template_id, sorted(fields))
    return template.to_dict()


def list_drills_for_scope(
    viewer_scope: Scope,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> dict:
    rows = Drill.query.filter_by(club_id=viewer_scope.club_id).all()
    rows = _filter(rows, category, search, lambda d: d.attributes or [])
    partition = partition_by_scope(rows, viewer_scope)
    return {
        'scope': viewer_scope.to_dict(),
        'drills': [d.to_dict() for d in partition.own],
        'inherited_drills': [d.to_dict() for d in partition.inherited],
        'total_count': partition.total_count,
    }


def list_drill_templates_for_scope(
    viewer_scope: Scope,
    category: Optional[str] = None,
    search: Optional[str] = None,
    attributes: Optional[List[str]] = None,
) -> dict:
    """Templates visible at ``viewer_scope``.

    ``attributes`` keeps only templates carrying every listed attribute.
    ``available_attributes`` lists what the visible templates offer, for filter UIs.
    """
    rows = DrillTemplate.query.filter_by(club_id=viewer_scope.club_id).all()
    rows = _filter(rows, category, search, lambda t: t.aggregated_attributes or [])
    wanted = [a for a in (attributes or []) if a]
    if wanted:
        rows = [t for t in rows if all(a in (t.aggregated_attributes or []) for a in wanted)]

    partition = partition_by_scope(rows, viewer_scope)
    visible = partition.own + partition.inherited
    available = sorted({attr for t in visible for attr in (t.aggregated_attributes or [])})
    return {
        'scope': viewer_scope.to_dict(),
        'templates': [t.to_dict() for t in partition.own],
        'inherited_templates': [t.to_dict() for t in partition.inherited],
        'total_count': partition.total_count,
        'available_attributes': available,
    }
