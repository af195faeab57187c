import pytest
from pydantic import ValidationError

from clubportal.models.formation import Tactic
from clubportal.models.club import db
from clubportal.services import tactic_service
from clubportal.services.errors import (
    FormationChangeRequiresConfirmation,
    FormationNotFoundError,
    InvalidPayloadError,
    TacticNotFoundError,
)
from clubportal.services.tactic_service import ResolutionCache
from clubportal.tactics.errors import CyclicInheritanceError
from clubportal.tactics.types import ResolvedPosition
from conftest import scope_body


def _create(org, formations, scope='club', formation='442', **fields):
    body = {
        'name': fields.pop('name', f'{scope} tactic'),
        'parent_formation_id': formations[formation],
        'scope': scope_body(org[scope]),
    }
    body.update(fields)
    return tactic_service.create_tactic(body)


def test_create_root_tactic_resolves_against_formation(org, formations):
    created = _create(org, formations, position_overrides={'9': {'y': 85}}, tags=['pressing'])

    striker = created['resolved_positions'][9]
    assert created['squad_size'] == 11
    assert created['scope'] == {'type': 'club', 'club_id': 'club-1'}
    assert created['position_overrides'] == {'9': {'y': 85.0}}
    assert striker['index'] == 9
    assert striker['label'] == 'ST'
    assert (striker['x'], striker['y']) == (40, 85)
    assert striker['overridden_by'] == [created['id']]
    assert striker['overridden_fields'] == ['y']
    assert created['overrides'] == [{
        'position_index': 9,
        'position_label': 'ST',
        'field': 'y',
        'original_value': 80,
        'overridden_value': 85.0,
        'tactic_id': created['id'],
        'tactic_name': 'club tactic',
    }]


def test_team_tactic_inherits_from_club_tactic(org, formations):
    parent = _create(org, formations, position_overrides={'9': {'key_responsibilities': ['Press CBs']}})
    child = _create(
        org,
        formations,
        scope='u10_blue',
        parent_tactic_id=parent['id'],
        position_overrides={'9': {'key_responsibilities': ['Use pace'], 'x': 45}},
    )

    striker = child['resolved_positions'][9]
    assert striker['key_responsibilities'] == ['Press CBs', 'Use pace']
    assert striker['overridden_by'] == [parent['id'], child['id']]
    assert striker['overridden_fields'] == ['x', 'key_responsibilities']
    assert child['parent_tactic_id'] == parent['id']


def test_list_tactics_partitions_by_viewer(org, formations):
    club_tactic = _create(org, formations, name='Club Shape')
    u10_tactic = _create(org, formations, scope='u10', name='U10 Shape')
    team_tactic = _create(org, formations, scope='u10_blue', name='Blue Shape')

    from_team = tactic_service.list_tactics_for_scope(org['u10_blue'])
    from_sibling = tactic_service.list_tactics_for_scope(org['u10_red'])
    from_club = tactic_service.list_tactics_for_scope(org['club'])
    from_other_age_group = tactic_service.list_tactics_for_scope(org['u12_blue'])

    assert [t['id'] for t in from_team['scope_tactics']] == [team_tactic['id']]
    assert [t['id'] for t in from_team['inherited_tactics']] == [club_tactic['id'], u10_tactic['id']]
    assert from_team['total_count'] == 3
    assert from_team['scope']['type'] == 'team'
    assert [t['id'] for t in from_sibling['scope_tactics']] == []
    assert len(from_sibling['inherited_tactics']) == 2
    assert [t['id'] for t in from_club['scope_tactics']] == [club_tactic['id']]
    assert from_club['inherited_tactics'] == []
    assert [t['id'] for t in from_other_age_group['inherited_tactics']] == [club_tactic['id']]
    assert from_team['inherited_tactics'][0]['parent_formation_name'] == '4-4-2 Classic'


def test_other_club_sees_nothing(org, formations):
    _create(org, formations)

    listing = tactic_service.list_tactics_for_scope(org['other_club'])

    assert listing['total_count'] == 0


def test_parent_must_be_visible_from_new_scope(org, formations):
    sibling = _create(org, formations, scope='u10_red')

    with pytest.raises(InvalidPayloadError, match='not visible'):
        _create(org, formations, scope='u10_blue', parent_tactic_id=sibling['id'])


def test_parent_must_share_formation(org, formations):
    parent = _create(org, formations, formation='433')

    with pytest.raises(InvalidPayloadError, match='same base formation'):
        _create(org, formations, scope='u10', parent_tactic_id=parent['id'])


def test_missing_parent_is_rejected_on_create(org, formations):
    with pytest.raises(InvalidPayloadError, match='not found'):
        _create(org, formations, parent_tactic_id='no-such-tactic')


def test_override_index_must_fit_squad(org, formations):
    with pytest.raises(InvalidPayloadError, match='outside squad size'):
        _create(org, formations, formation='7v7', position_overrides={'7': {'x': 10}})

    with pytest.raises(InvalidPayloadError, match='Relationship index 7'):
        _create(
            org,
            formations,
            formation='7v7',
            relationships=[{'from_index': 1, 'to_index': 7, 'type': 'support'}],
        )

    assert Tactic.query.count() == 0


def test_payload_values_are_validated(org, formations):
    with pytest.raises(ValidationError):
        _create(org, formations, position_overrides={'3': {'direction': 'sideways'}})
    with pytest.raises(ValidationError):
        _create(org, formations, position_overrides={'3': {'x': 140}})
    with pytest.raises(ValidationError):
        _create(org, formations, relationships=[{'from_index': 1, 'to_index': 2, 'type': 'telepathy'}])


def test_scope_must_exist(org, formations):
    with pytest.raises(InvalidPayloadError):
        tactic_service.create_tactic({
            'name': 'Ghost',
            'parent_formation_id': formations['442'],
            'scope': {'club_id': 'club-1', 'age_group_id': 'u12', 'team_id': 'u10-blue'},
        })
    with pytest.raises(FormationNotFoundError):
        tactic_service.create_tactic({
            'name': 'No formation',
            'parent_formation_id': 'missing',
            'scope': {'club_id': 'club-1'},
        })


def test_formation_change_requires_confirmation(org, formations):
    created = _create(
        org,
        formations,
        position_overrides={'1': {'x': 18}, '9': {'y': 85}, '10': {'direction': 'attacking'}},
        relationships=[
            {'from_index': 1, 'to_index': 5, 'type': 'overlap'},
            {'from_index': 9, 'to_index': 10, 'type': 'combination'},
        ],
    )

    preview = tactic_service.preview_formation_change(created['id'], formations['7v7'])
    assert preview == {'override_count': 3, 'relationship_count': 2, 'principle_count': 0, 'requires_confirmation': True}

    with pytest.raises(FormationChangeRequiresConfirmation) as excinfo:
        tactic_service.update_tactic(created['id'], {'parent_formation_id': formations['7v7']})
    assert excinfo.value.counts.to_dict() == {'override_count': 3, 'relationship_count': 2, 'principle_count': 0}
    assert db.session.get(Tactic, created['id']).squad_size == 11

    updated = tactic_service.update_tactic(
        created['id'], {'parent_formation_id': formations['7v7']}, confirm_reset=True
    )
    assert updated['squad_size'] == 7
    assert updated['parent_formation_id'] == formations['7v7']
    assert updated['position_overrides'] == {}
    assert updated['relationships'] == []
    assert len(updated['resolved_positions']) == 7


def test_formation_change_without_data_needs_no_confirmation(org, formations):
    created = _create(org, formations)

    updated = tactic_service.update_tactic(created['id'], {'parent_formation_id': formations['433']})

    assert updated['parent_formation_id'] == formations['433']


def test_formation_change_blocked_inside_inheritance(org, formations):
    parent = _create(org, formations)
    child = _create(org, formations, scope='u10', parent_tactic_id=parent['id'])

    with pytest.raises(InvalidPayloadError, match='inheriting'):
        tactic_service.update_tactic(parent['id'], {'parent_formation_id': formations['433']}, confirm_reset=True)
    with pytest.raises(InvalidPayloadError, match='inherits from another tactic'):
        tactic_service.update_tactic(child['id'], {'parent_formation_id': formations['433']}, confirm_reset=True)


def test_partial_update_keeps_unsent_fields(org, formations):
    created = _create(org, formations, summary='Compact mid block', position_overrides={'2': {'x': 35}})

    updated = tactic_service.update_tactic(created['id'], {'name': 'Mid Block', 'style': 'defensive'})

    assert updated['name'] == 'Mid Block'
    assert updated['style'] == 'defensive'
    assert updated['summary'] == 'Compact mid block'
    assert updated['position_overrides'] == {'2': {'x': 35.0}}


def test_parent_edit_reaches_child_resolution(org, formations):
    parent = _create(org, formations, position_overrides={'9': {'y': 75}})
    child = _create(org, formations, scope='u10', parent_tactic_id=parent['id'])
    assert tactic_service.get_tactic_detail(child['id'])['resolved_positions'][9]['y'] == 75

    tactic_service.update_tactic(parent['id'], {'position_overrides': {'9': {'y': 60}}})

    assert tactic_service.get_tactic_detail(child['id'])['resolved_positions'][9]['y'] == 60


def test_merge_then_reset_position_override(org, formations):
    created = _create(org, formations)

    tactic_service.merge_position_override(created['id'], 6, {'direction': 'defensive'})
    merged = tactic_service.merge_position_override(created['id'], 6, {'x': 38})
    assert merged['position_overrides'] == {'6': {'x': 38.0, 'direction': 'defensive'}}

    reset_x = tactic_service.reset_override(created['id'], 6, 'x')
    assert reset_x['position_overrides'] == {'6': {'direction': 'defensive'}}
    assert reset_x['resolved_positions'][6]['x'] == 40

    cleared = tactic_service.reset_override(created['id'], 6)
    assert cleared['position_overrides'] == {}
    assert cleared['resolved_positions'][6]['overridden_by'] == []

    with pytest.raises(InvalidPayloadError):
        tactic_service.reset_override(created['id'], 6, 'colour')
    with pytest.raises(InvalidPayloadError):
        tactic_service.merge_position_override(created['id'], 11, {'x': 10})


def test_empty_override_patch_is_not_stored(org, formations):
    created = _create(org, formations)

    merged = tactic_service.merge_position_override(created['id'], 3, {})
    nulled = tactic_service.merge_position_override(created['id'], 3, {'x': None})
    preview = tactic_service.preview_formation_change(created['id'], formations['433'])

    assert merged['position_overrides'] == {}
    assert nulled['position_overrides'] == {}
    assert db.session.get(Tactic, created['id']).position_overrides == {}
    assert preview == {'override_count': 0, 'relationship_count': 0, 'principle_count': 0, 'requires_confirmation': False}


def test_empty_override_entries_are_dropped_on_create_and_update(org, formations):
    created = _create(org, formations, position_overrides={'3': {}, '9': {'y': 85}})
    assert created['position_overrides'] == {'9': {'y': 85.0}}

    updated = tactic_service.update_tactic(created['id'], {'position_overrides': {'4': {'x': None}}})
    assert updated['position_overrides'] == {}

    preview = tactic_service.preview_formation_change(created['id'], formations['433'])
    assert preview['override_count'] == 0
    assert preview['requires_confirmation'] is False


def test_principles_are_stored_and_returned(org, formations):
    created = _create(
        org,
        formations,
        principles=[{'title': 'Compact block', 'description': 'Stay within 30m', 'position_indices': [5, 6, 7]}],
    )

    assert created['principles'] == [
        {'title': 'Compact block', 'description': 'Stay within 30m', 'position_indices': [5, 6, 7]}
    ]

    updated = tactic_service.update_tactic(
        created['id'], {'principles': [{'title': 'Press high', 'position_indices': [9, 10]}]}
    )
    assert updated['principles'] == [{'title': 'Press high', 'description': '', 'position_indices': [9, 10]}]


def test_principle_index_must_fit_squad(org, formations):
    with pytest.raises(InvalidPayloadError, match='Principle index 7'):
        _create(
            org,
            formations,
            formation='7v7',
            principles=[{'title': 'Width', 'position_indices': [3, 7]}],
        )

    assert Tactic.query.count() == 0


def test_formation_change_discards_principles(org, formations):
    created = _create(org, formations, principles=[{'title': 'Compact block', 'position_indices': [5, 6]}])

    preview = tactic_service.preview_formation_change(created['id'], formations['7v7'])
    assert preview['principle_count'] == 1
    assert preview['requires_confirmation'] is True

    with pytest.raises(FormationChangeRequiresConfirmation, match='1 principle'):
        tactic_service.update_tactic(created['id'], {'parent_formation_id': formations['7v7']})

    updated = tactic_service.update_tactic(
        created['id'], {'parent_formation_id': formations['7v7']}, confirm_reset=True
    )
    assert updated['principles'] == []


def test_list_tactic_overrides_for_child(org, formations):
    parent = _create(org, formations, position_overrides={'6': {'direction': 'defensive'}})
    child = _create(
        org,
        formations,
        scope='u10',
        parent_tactic_id=parent['id'],
        position_overrides={'6': {'direction': 'neutral'}},
    )

    overrides = tactic_service.list_tactic_overrides(child['id'])

    assert overrides == [{
        'position_index': 6,
        'position_label': 'CM',
        'field': 'direction',
        'original_value': 'defensive',
        'overridden_value': 'neutral',
        'tactic_id': child['id'],
        'tactic_name': 'u10 tactic',
    }]


def test_delete_parent_leaves_child_resolvable(org, formations):
    parent = _create(org, formations, position_overrides={'9': {'y': 75}})
    child = _create(org, formations, scope='u10', parent_tactic_id=parent['id'], position_overrides={'2': {'x': 30}})

    result = tactic_service.delete_tactic(parent['id'])
    detail = tactic_service.get_tactic_detail(child['id'])

    assert result == {'deleted': parent['id'], 'orphaned_children': [child['id']]}
    assert detail['parent_tactic_id'] == parent['id']
    assert detail['resolved_positions'][9]['y'] == 80
    assert detail['resolved_positions'][2]['x'] == 30
    assert detail['resolved_positions'][2]['overridden_fields'] == ['x']
    assert detail['overrides'][0]['original_value'] == 40


def test_stored_cycle_surfaces_as_resolution_error(org, formations):
    for tactic_id, parent_id in (('cycle-a', 'cycle-b'), ('cycle-b', 'cycle-a')):
        db.session.add(Tactic(
            id=tactic_id,
            name=tactic_id,
            parent_formation_id=formations['442'],
            parent_tactic_id=parent_id,
            squad_size=11,
            scope_type='club',
            club_id='club-1',
        ))
    db.session.commit()

    with pytest.raises(CyclicInheritanceError):
        tactic_service.get_tactic_detail('cycle-a')


def test_unknown_tactic_raises_not_found(app):
    with pytest.raises(TacticNotFoundError):
        tactic_service.get_tactic_detail('missing')
    with pytest.raises(TacticNotFoundError):
        tactic_service.delete_tactic('missing')


def test_list_formations_filters_by_squad_size(formations):
    assert [f['name'] for f in tactic_service.list_formations(squad_size=7)] == ['7v7 2-3-1']
    assert len(tactic_service.list_formations()) == 6


def test_resolution_cache_evicts_oldest_and_copies():
    cache = ResolutionCache(maxsize=2)
    position = ResolvedPosition(label='GK', x=50, y=5, source_formation_id='f')

    cache.put('a', [position])
    cache.put('b', [position])
    cache.get('a')
    cache.put('c', [position])

    assert cache.get('b') is None
    cached = cache.get('a')
    cached[0].overridden_by.append('mutated')
    assert cache.get('a')[0].overridden_by == []
