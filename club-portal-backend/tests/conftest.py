import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from flask import Flask
import sqlalchemy as sa

from clubportal.data.formations import formation_id
from clubportal.extensions import limiter
from clubportal.models.club import AgeGroup, Club, Team, db
from clubportal.routes.drills import drills_bp
from clubportal.routes.formations import formations_bp
from clubportal.routes.tactics import tactics_bp
from clubportal.scripts.seed_formations import seed_formations
from clubportal.tactics.scope import AgeGroupScope, ClubScope, TeamScope
from clubportal.tactics.types import Formation, FormationSlot, PositionOverride, Tactic

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def app():
    app = Flask(__name__)
    app.config.update(
        TESTING=True,
        SECRET_KEY='test-secret-key',
        SQLALCHEMY_DATABASE_URI='sqlite:///:memory:',
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        RATELIMIT_ENABLED=False,
    )

    db.init_app(app)
    limiter.init_app(app)
    app.register_blueprint(formations_bp, url_prefix='/api')
    app.register_blueprint(tactics_bp, url_prefix='/api')
    app.register_blueprint(drills_bp, url_prefix='/api')

    ctx = app.app_context()
    ctx.push()
    db.create_all()

    yield app

    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def org(app):
    """Two clubs; the first has U10 (two teams) and U12 (one team)."""
    club = Club(id='club-1', name='Riverside Juniors', short_name='RJFC')
    other_club = Club(id='club-2', name='Hilltop Rovers')
    u10 = AgeGroup(id='u10', club_id='club-1', name='U10', season='2026')
    u12 = AgeGroup(id='u12', club_id='club-1', name='U12', season='2026')
    u10_blue = Team(id='u10-blue', club_id='club-1', age_group_id='u10', name='U10 Blue')
    u10_red = Team(id='u10-red', club_id='club-1', age_group_id='u10', name='U10 Red')
    u12_blue = Team(id='u12-blue', club_id='club-1', age_group_id='u12', name='U12 Blue')
    db.session.add_all([club, other_club, u10, u12, u10_blue, u10_red, u12_blue])
    db.session.commit()
    return {
        'club': ClubScope('club-1'),
        'other_club': ClubScope('club-2'),
        'u10': AgeGroupScope('club-1', 'u10'),
        'u12': AgeGroupScope('club-1', 'u12'),
        'u10_blue': TeamScope('club-1', 'u10', 'u10-blue'),
        'u10_red': TeamScope('club-1', 'u10', 'u10-red'),
        'u12_blue': TeamScope('club-1', 'u12', 'u12-blue'),
    }


@pytest.fixture
def formations(app):
    seed_formations()
    return {
        '442': formation_id('4-4-2 Classic'),
        '433': formation_id('4-3-3 Attack'),
        '7v7': formation_id('7v7 2-3-1'),
    }


def scope_body(scope):
    data = scope.to_dict()
    data.pop('type')
    return data


# ---------------------------------------------------------------------------
# Plain engine records
# ---------------------------------------------------------------------------

ELEVEN_SLOTS = (
    ('GK', 50, 5),
    ('LB', 20, 25), ('CB', 40, 20), ('CB', 60, 20), ('RB', 80, 25),
    ('LM', 20, 50), ('CM', 40, 50), ('CM', 60, 50), ('RM', 80, 50),
    ('ST', 50, 70), ('ST', 60, 80),
)


def make_formation(formation_id='f-442', slots=ELEVEN_SLOTS, name=None):
    return Formation(
        id=formation_id,
        name=name or formation_id,
        squad_size=len(slots),
        slots=tuple(FormationSlot(label, x, y) for label, x, y in slots),
    )


def make_tactic(tactic_id, formation, overrides=None, parent=None, scope=None, relationships=(), minutes=0, **extra):
    return Tactic(
        id=tactic_id,
        name=extra.pop('name', tactic_id.title()),
        parent_formation_id=formation.id,
        squad_size=formation.squad_size,
        scope=scope or ClubScope('club-1'),
        parent_tactic_id=parent,
        position_overrides={index: PositionOverride(**fields) for index, fields in (overrides or {}).items()},
        relationships=tuple(relationships),
        created_at=BASE_TIME + timedelta(minutes=minutes),
        updated_at=BASE_TIME + timedelta(minutes=minutes),
        **extra,
    )


@pytest.fixture
def sqlite_memory_engine():
    engine = sa.create_engine('sqlite:///:memory:')
    try:
        yield engine
    finally:
        engine.dispose()
