from clubportal.models.club import _as_utc, _new_id, _utcnow, db, scope_of_row
from clubportal.tactics.types import (
    Formation as FormationRecord,
    FormationSlot,
    Principle,
    Relationship,
    Tactic as TacticRecord,
    overrides_from_json,
)


class Formation(db.Model):
    """Reference formation: an ordered list of slots with default coordinates."""

    __tablename__ = 'formations'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(100), nullable=False, unique=True)
    squad_size = db.Column(db.Integer, nullable=False)
    slots = db.Column(db.JSON, default=list)
    is_system = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow)

    def to_record(self) -> FormationRecord:
        return FormationRecord(
            id=self.id,
            name=self.name,
            squad_size=self.squad_size,
            slots=tuple(FormationSlot.from_dict(slot) for slot in (self.slots or [])),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'squad_size': self.squad_size,
            'slots': self.slots or [],
            'is_system': bool(self.is_system),
        }


class Tactic(db.Model):
    """A scoped customisation of a formation.

    ``parent_tactic_id`` is not a foreign key: deleting a parent
    leaves children pointing at nothing, and resolution copes with that.
    """

    __tablename__ = 'tactics'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(150), nullable=False)
    parent_formation_id = db.Column(db.String(36), db.ForeignKey('formations.id'), nullable=False, index=True)
    parent_tactic_id = db.Column(db.String(36), nullable=True, index=True)
    squad_size = db.Column(db.Integer, nullable=False)
    scope_type = db.Column(db.String(10), nullable=False)
    club_id = db.Column(db.String(36), db.ForeignKey('clubs.id'), nullable=False, index=True)
    age_group_id = db.Column(db.String(36), db.ForeignKey('age_groups.id'), nullable=True, index=True)
    team_id = db.Column(db.String(36), db.ForeignKey('teams.id'), nullable=True, index=True)
    position_overrides = db.Column(db.JSON, default=dict)
    relationships = db.Column(db.JSON, default=list)
    principles = db.Column(db.JSON, default=list)
    summary = db.Column(db.Text, nullable=True)
    style = db.Column(db.String(50), nullable=True)
    tags = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    parent_formation = db.relationship('Formation', lazy='joined')

    @property
    def scope(self):
        return scope_of_row(self)

    def to_record(self) -> TacticRecord:
        return TacticRecord(
            id=self.id,
            name=self.name,
            parent_formation_id=self.parent_formation_id,
            parent_tactic_id=self.parent_tactic_id,
            squad_size=self.squad_size,
            scope=self.scope,
            position_overrides=overrides_from_json(self.position_overrides),
            relationships=tuple(Relationship.from_dict(rel) for rel in (self.relationships or [])),
            principles=tuple(Principle.from_dict(p) for p in (self.principles or [])),
            summary=self.summary,
            style=self.style,
            tags=tuple(self.tags or ()),
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )

    def to_summary_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'summary': self.summary,
            'style': self.style,
            'squad_size': self.squad_size,
            'parent_formation_id': self.parent_formation_id,
            'parent_formation_name': self.parent_formation.name if self.parent_formation else None,
            'parent_tactic_id': self.parent_tactic_id,
            'scope': self.scope.to_dict(),
            'tags': self.tags or [],
            'created_at': _as_utc(self.created_at).isoformat() if self.created_at else None,
            'updated_at': _as_utc(self.updated_at).isoformat() if self.updated_at else None,
        }

    def to_dict(self):
        data = self.to_summary_dict()
        data['position_overrides'] = self.position_overrides or {}
        data['relationships'] = self.relationships or []
        data['principles'] = self.principles or []
        return data
