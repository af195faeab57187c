from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from clubportal.tactics.scope import (
    AgeGroupScope,
    ClubScope,
    TeamScope,
    Visibility,
    classify,
    partition_by_scope,
    scope_from_dict,
    scope_from_ids,
)

CLUB = ClubScope('club-1')
OTHER_CLUB = ClubScope('club-2')
U10 = AgeGroupScope('club-1', 'u10')
U12 = AgeGroupScope('club-1', 'u12')
U10_BLUE = TeamScope('club-1', 'u10', 'u10-blue')
U10_RED = TeamScope('club-1', 'u10', 'u10-red')
U12_BLUE = TeamScope('club-1', 'u12', 'u12-blue')


@pytest.mark.parametrize(
    'viewer, expected',
    [
        (CLUB, Visibility.OWNED),
        (U10, Visibility.INHERITED),
        (U10_BLUE, Visibility.INHERITED),
        (U12_BLUE, Visibility.INHERITED),
        (OTHER_CLUB, Visibility.INVISIBLE),
        (AgeGroupScope('club-2', 'u10'), Visibility.INVISIBLE),
    ],
)
def test_club_resource_visibility(viewer, expected):
    assert classify(CLUB, viewer) is expected


@pytest.mark.parametrize(
    'viewer, expected',
    [
        (U10, Visibility.OWNED),
        (U10_BLUE, Visibility.INHERITED),
        (U10_RED, Visibility.INHERITED),
        (U12_BLUE, Visibility.INVISIBLE),
        (U12, Visibility.INVISIBLE),
        (CLUB, Visibility.INVISIBLE),
    ],
)
def test_age_group_resource_visibility(viewer, expected):
    assert classify(U10, viewer) is expected


@pytest.mark.parametrize('viewer', [CLUB, U10, U10_RED, U12_BLUE, TeamScope('club-2', 'u10', 'u10-blue')])
def test_team_resource_only_visible_to_that_team(viewer):
    assert classify(U10_BLUE, viewer) is Visibility.INVISIBLE
    assert classify(U10_BLUE, U10_BLUE) is Visibility.OWNED


def test_same_ids_at_different_levels_are_not_owned():
    assert classify(ClubScope('x'), AgeGroupScope('x', 'x')) is Visibility.INHERITED
    assert classify(AgeGroupScope('x', 'x'), ClubScope('x')) is Visibility.INVISIBLE


def test_classify_rejects_non_scopes():
    with pytest.raises(TypeError):
        classify({'type': 'club', 'club_id': 'club-1'}, CLUB)


def test_scopes_require_all_ancestor_ids():
    with pytest.raises(ValueError):
        TeamScope('club-1', '', 'u10-blue')
    with pytest.raises(ValueError):
        AgeGroupScope('club-1', None)


def _resource(name, scope, created_minute=None):
    created = None
    if created_minute is not None:
        created = datetime(2026, 3, 1, 9, created_minute, tzinfo=timezone.utc)
    return SimpleNamespace(name=name, scope=scope, created_at=created)


def test_partition_splits_and_sorts_by_name_then_creation():
    resources = [
        _resource('zonal marking', U10_BLUE, 1),
        _resource('Build Up', CLUB, 5),
        _resource('build up', CLUB, 2),
        _resource('Counter Press', U10, 3),
        _resource('Attack', U10_BLUE, 4),
        _resource('Sibling Only', U10_RED, 0),
        _resource('Other Club', OTHER_CLUB, 0),
    ]

    partition = partition_by_scope(resources, U10_BLUE)

    assert [r.name for r in partition.own] == ['Attack', 'zonal marking']
    assert [(r.name, r.created_at.minute) for r in partition.inherited] == [
        ('build up', 2),
        ('Build Up', 5),
        ('Counter Press', 3),
    ]
    assert partition.total_count == 5


def test_partition_puts_undated_rows_after_dated_ties():
    resources = [_resource('Drill', CLUB), _resource('Drill', CLUB, 7)]

    partition = partition_by_scope(resources, CLUB)

    assert [r.created_at for r in partition.own][-1] is None


def test_partition_accepts_custom_accessors():
    rows = [('b', CLUB), ('a', U10)]

    partition = partition_by_scope(
        rows,
        U10,
        scope_of=lambda row: row[1],
        name_of=lambda row: row[0],
        created_of=lambda row: None,
    )

    assert partition.own == [('a', U10)]
    assert partition.inherited == [('b', CLUB)]


def test_scope_from_ids_builds_most_specific_scope():
    assert scope_from_ids('club-1') == CLUB
    assert scope_from_ids('club-1', 'u10') == U10
    assert scope_from_ids('club-1', 'u10', 'u10-blue') == U10_BLUE
    with pytest.raises(ValueError):
        scope_from_ids('club-1', None, 'u10-blue')


def test_scope_dict_shape():
    assert U10_BLUE.to_dict() == {
        'type': 'team',
        'club_id': 'club-1',
        'age_group_id': 'u10',
        'team_id': 'u10-blue',
    }
    assert scope_from_dict({'type': 'ageGroup', 'club_id': 'club-1', 'age_group_id': 'u10'}) == U10
    assert scope_from_dict({'type': 'age_group', 'club_id': 'club-1', 'age_group_id': 'u10'}) == U10
    with pytest.raises(ValueError):
        scope_from_dict({'type': 'region', 'club_id': 'club-1'})
