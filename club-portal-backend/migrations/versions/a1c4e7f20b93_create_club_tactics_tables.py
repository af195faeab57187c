"""create club hierarchy, formation, tactic and drill tables

Revision ID: a1c4e7f20b93
Revises:
Create Date: 2026-10-19 09:12:31.208114

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e7f20b93'
down_revision = None
branch_labels = None
depends_on = None


def _scope_columns():
    return [
        sa.Column('scope_type', sa.String(length=10), nullable=False),
        sa.Column('club_id', sa.String(length=36), sa.ForeignKey('clubs.id'), nullable=False),
        sa.Column('age_group_id', sa.String(length=36), sa.ForeignKey('age_groups.id'), nullable=True),
        sa.Column('team_id', sa.String(length=36), sa.ForeignKey('teams.id'), nullable=True),
    ]


def _scope_indexes(table):
    for column in ('club_id', 'age_group_id', 'team_id'):
        op.create_index(f'ix_{table}_{column}', table, [column])


def upgrade():
    op.create_table(
        'clubs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('short_name', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'age_groups',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('club_id', sa.String(length=36), sa.ForeignKey('clubs.id'), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('season', sa.String(length=10), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('club_id', 'name', name='uq_age_group_club_name'),
    )
    op.create_index('ix_age_groups_club_id', 'age_groups', ['club_id'])
    op.create_table(
        'teams',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('club_id', sa.String(length=36), sa.ForeignKey('clubs.id'), nullable=False),
        sa.Column('age_group_id', sa.String(length=36), sa.ForeignKey('age_groups.id'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_teams_club_id', 'teams', ['club_id'])
    op.create_index('ix_teams_age_group_id', 'teams', ['age_group_id'])

    op.create_table(
        'formations',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False, unique=True),
        sa.Column('squad_size', sa.Integer(), nullable=False),
        sa.Column('slots', sa.JSON(), nullable=True),
        sa.Column('is_system', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'tactics',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('parent_formation_id', sa.String(length=36), sa.ForeignKey('formations.id'), nullable=False),
        sa.Column('parent_tactic_id', sa.String(length=36), nullable=True),
        sa.Column('squad_size', sa.Integer(), nullable=False),
        *_scope_columns(),
        sa.Column('position_overrides', sa.JSON(), nullable=True),
        sa.Column('relationships', sa.JSON(), nullable=True),
        sa.Column('principles', sa.JSON(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('style', sa.String(length=50), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_tactics_parent_formation_id', 'tactics', ['parent_formation_id'])
    op.create_index('ix_tactics_parent_tactic_id', 'tactics', ['parent_tactic_id'])
    _scope_indexes('tactics')

    op.create_table(
        'drills',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(length=20), nullable=False, server_default='mixed'),
        sa.Column('attributes', sa.JSON(), nullable=True),
        sa.Column('equipment', sa.JSON(), nullable=True),
        sa.Column('diagram', sa.Text(), nullable=True),
        sa.Column('instructions', sa.JSON(), nullable=True),
        sa.Column('variations', sa.JSON(), nullable=True),
        sa.Column('links', sa.JSON(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        *_scope_columns(),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    _scope_indexes('drills')

    op.create_table(
        'drill_templates',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=20), nullable=True),
        sa.Column('drill_ids', sa.JSON(), nullable=True),
        sa.Column('aggregated_attributes', sa.JSON(), nullable=True),
        sa.Column('total_duration', sa.Integer(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        *_scope_columns(),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    _scope_indexes('drill_templates')


def downgrade():
    for table in ('drill_templates', 'drills', 'tactics'):
        for column in ('team_id', 'age_group_id', 'club_id'):
            op.drop_index(f'ix_{table}_{column}', table_name=table)
    op.drop_table('drill_templates')
    op.drop_table('drills')
    op.drop_index('ix_tactics_parent_tactic_id', table_name='tactics')
    op.drop_index('ix_tactics_parent_formation_id', table_name='tactics')
    op.drop_table('tactics')
    op.drop_table('formations')
    op.drop_index('ix_teams_age_group_id', table_name='teams')
    op.drop_index('ix_teams_club_id', table_name='teams')
    op.drop_table('teams')
    op.drop_index('ix_age_groups_club_id', table_name='age_groups')
    op.drop_table('age_groups')
    op.drop_table('clubs')
