from datetime import datetime, timezone
from uuid import uuid4

from flask_sqlalchemy import SQLAlchemy

from clubportal.tactics.scope import scope_from_ids


def _as_utc(dt: datetime | None) -> datetime | None:
    """Normalize naive datetimes to UTC-aware values."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


db = SQLAlchemy()


class Club(db.Model):
    __tablename__ = 'clubs'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(150), nullable=False)
    short_name = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, default=_utcnow)

    age_groups = db.relationship('AgeGroup', backref='club', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'short_name': self.short_name,
            'created_at': _as_utc(self.created_at).isoformat() if self.created_at else None,
        }


class AgeGroup(db.Model):
    __tablename__ = 'age_groups'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    club_id = db.Column(db.String(36), db.ForeignKey('clubs.id'), nullable=False, index=True)
    name = db.Column(db.String(50), nullable=False)
    season = db.Column(db.String(10))
    created_at = db.Column(db.DateTime, default=_utcnow)

    teams = db.relationship('Team', backref='age_group', lazy=True, cascade='all, delete-orphan')

    __table_args__ = (
        db.UniqueConstraint('club_id', 'name', name='uq_age_group_club_name'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'club_id': self.club_id,
            'name': self.name,
            'season': self.season,
        }


class Team(db.Model):
    __tablename__ = 'teams'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    club_id = db.Column(db.String(36), db.ForeignKey('clubs.id'), nullable=False, index=True)
    age_group_id = db.Column(db.String(36), db.ForeignKey('age_groups.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'club_id': self.club_id,
            'age_group_id': self.age_group_id,
            'name': self.name,
        }


def scope_columns(scope) -> dict:
    """Column values for a scope variant, for the scoped tables below."""
    data = scope.to_dict()
    return {
        'scope_type': data['type'],
        'club_id': data['club_id'],
        'age_group_id': data.get('age_group_id'),
        'team_id': data.get('team_id'),
    }


def scope_of_row(row):
    return scope_from_ids(row.club_id, row.age_group_id, row.team_id)


def scope_exists(scope) -> bool:
    """Check that every id a scope carries names a real, correctly nested org unit."""
    columns = scope_columns(scope)
    if db.session.get(Club, columns['club_id']) is None:
        return False
    if columns['age_group_id']:
        age_group = db.session.get(AgeGroup, columns['age_group_id'])
        if age_group is None or age_group.club_id != columns['club_id']:
            return False
    if columns['team_id']:
        team = db.session.get(Team, columns['team_id'])
        if team is None or team.age_group_id != columns['age_group_id'] or team.club_id != columns['club_id']:
            return False
    return True
