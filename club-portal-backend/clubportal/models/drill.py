from clubportal.models.club import _as_utc, _new_id, _utcnow, db, scope_of_row

DRILL_CATEGORIES = ('technical', 'tactical', 'physical', 'mental', 'mixed')


class Drill(db.Model):
    __tablename__ = 'drills'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, default='')
    duration_minutes = db.Column(db.Integer, default=0)
    category = db.Column(db.String(20), nullable=False, default='mixed')
    attributes = db.Column(db.JSON, default=list)
    equipment = db.Column(db.JSON, default=list)
    diagram = db.Column(db.Text, nullable=True)
    instructions = db.Column(db.JSON, default=list)
    variations = db.Column(db.JSON, default=list)
    links = db.Column(db.JSON, default=list)
    is_public = db.Column(db.Boolean, default=False)
    created_by = db.Column(db.String(36), nullable=True)
    scope_type = db.Column(db.String(10), nullable=False)
    club_id = db.Column(db.String(36), db.ForeignKey('clubs.id'), nullable=False, index=True)
    age_group_id = db.Column(db.String(36), db.ForeignKey('age_groups.id'), nullable=True, index=True)
    team_id = db.Column(db.String(36), db.ForeignKey('teams.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    @property
    def scope(self):
        return scope_of_row(self)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description or '',
            'duration': self.duration_minutes or 0,
            'category': self.category,
            'attributes': self.attributes or [],
            'equipment': self.equipment or [],
            'diagram': self.diagram,
            'instructions': self.instructions or [],
            'variations': self.variations or [],
            'links': self.links or [],
            'is_public': bool(self.is_public),
            'created_by': self.created_by,
            'scope': self.scope.to_dict(),
            'created_at': _as_utc(self.created_at).isoformat() if self.created_at else None,
        }


class DrillTemplate(db.Model):
    """An ordered session plan built from drills, with aggregates cached on the row."""

    __tablename__ = 'drill_templates'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, default='')
    category = db.Column(db.String(20), nullable=True)
    drill_ids = db.Column(db.JSON, default=list)
    aggregated_attributes = db.Column(db.JSON, default=list)
    total_duration = db.Column(db.Integer, default=0)
    is_public = db.Column(db.Boolean, default=False)
    created_by = db.Column(db.String(36), nullable=True)
    scope_type = db.Column(db.String(10), nullable=False)
    club_id = db.Column(db.String(36), db.ForeignKey('clubs.id'), nullable=False, index=True)
    age_group_id = db.Column(db.String(36), db.ForeignKey('age_groups.id'), nullable=True, index=True)
    team_id = db.Column(db.String(36), db.ForeignKey('teams.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    @property
    def scope(self):
        return scope_of_row(self)

    def refresh_aggregates(self, drills):
        """Recompute total duration and the de-duplicated attribute list from ``drills``."""
        self.total_duration = sum(d.duration_minutes or 0 for d in drills)
        seen = dict.fromkeys(attr for d in drills for attr in (d.attributes or []))
        self.aggregated_attributes = list(seen)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description or '',
            'drill_ids': self.drill_ids or [],
            'total_duration': self.total_duration or 0,
            'category': self.category,
            'attributes': self.aggregated_attributes or [],
            'is_public': bool(self.is_public),
            'created_by': self.created_by,
            'scope': self.scope.to_dict(),
            'created_at': _as_utc(self.created_at).isoformat() if self.created_at else None,
        }
