import pytest

from estimation.errors import RoomAlreadyExists, RoomNotFound
from estimation.models import PRIVATE, SPECTATOR, TSHIRT, VOTER, RoomSettings


def _room_with(engine, voter, *sids, auto_reveal=False, room_id='abc'):
    engine.create_room(voter(sids[0]), room_id=room_id, settings=RoomSettings(auto_reveal=auto_reveal))
    for sid in sids[1:]:
        engine.join(room_id, voter(sid))
    return engine.store.get_room(room_id)


def test_create_room_joins_creator_and_announces(engine, broadcaster, voter):
    room = engine.create_room(voter('s1', 'Alice'), room_id='abc')
    assert room.id == 'abc'
    assert list(room.participants) == ['s1']
    assert broadcaster.events('room-created', ('sid', 's1')) == ['abc']
    assert broadcaster.events('users-updated', ('room', 'abc'))[-1] == [
        {'id': 's1', 'name': 'Alice', 'spectator': False}
    ]
    assert broadcaster.events('public-rooms-updated', ('all', None))[-1] == [{'roomId': 'abc', 'count': 1}]
    assert 's1' in broadcaster.groups['abc']
    assert engine.registry.rooms_of('s1') == {'abc'}


def test_create_room_generates_code(engine, voter):
    room = engine.create_room(voter('s1'))
    assert len(room.id) == 6
    assert engine.store.exists(room.id)


def test_create_existing_room_leaves_it_untouched(engine, broadcaster, voter):
    # Scenario E
    room = _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '3')
    broadcaster.clear()

    with pytest.raises(RoomAlreadyExists):
        engine.create_room(voter('c'), room_id='abc')

    assert list(room.participants) == ['a', 'b']
    assert room.round.votes == {'a': '3'}
    assert broadcaster.sent == []
    assert engine.registry.rooms_of('c') == set()


def test_join_missing_room(engine, voter):
    with pytest.raises(RoomNotFound):
        engine.join('nope', voter('a'))
    assert not engine.store.exists('nope')


def test_rejoin_replaces_entry(engine, voter):
    room = _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '5')
    engine.join('abc', voter('a', 'Renamed'))
    assert list(room.participants) == ['b', 'a']
    assert room.participants['a'].display_name == 'Renamed'
    assert room.round.votes == {'a': '5'}


def test_join_revealed_room_gets_same_order(engine, broadcaster, voter):
    _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '1')
    engine.reveal('abc')
    order = broadcaster.events('revealed', ('room', 'abc'))[-1]
    engine.join('abc', voter('c'))
    assert broadcaster.events('revealed', ('sid', 'c')) == [order]


def test_vote_then_auto_reveal(engine, broadcaster, voter):
    # Scenario A
    room = _room_with(engine, voter, 'v1', 'v2', auto_reveal=True)
    engine.vote('abc', 'v1', '5')
    assert not room.round.revealed
    assert broadcaster.events('revealed') == []

    engine.vote('abc', 'v2', '8')
    assert room.round.revealed
    assert room.round.votes == {'v1': '5', 'v2': '8'}
    assert room.round.cheaters == set()
    payload = broadcaster.events('revealed', ('room', 'abc'))
    assert len(payload) == 1
    assert sorted(slot['id'] for slot in payload[0]['revealOrder']) == ['v1', 'v2']


def test_same_vote_after_reveal_is_not_cheating(engine, voter):
    # Scenario B
    room = _room_with(engine, voter, 'v1', 'v2')
    engine.vote('abc', 'v1', '5')
    engine.reveal('abc')
    engine.vote('abc', 'v1', '5')
    assert room.round.cheaters == set()


def test_changed_vote_after_reveal_is_cheating(engine, broadcaster, voter):
    # Scenario C
    room = _room_with(engine, voter, 'v1', 'v2')
    engine.vote('abc', 'v1', '5')
    engine.reveal('abc')
    engine.vote('abc', 'v1', '8')
    assert room.round.cheaters == {'v1'}
    assert room.round.votes['v1'] == '8'
    assert broadcaster.events('cheaters-updated', ('room', 'abc'))[-1] == ['v1']


def test_first_vote_after_reveal_is_cheating(engine, voter):
    room = _room_with(engine, voter, 'v1', 'v2')
    engine.vote('abc', 'v1', '5')
    engine.reveal('abc')
    engine.vote('abc', 'v2', '13')
    assert room.round.cheaters == {'v2'}
    assert room.round.votes == {'v1': '5', 'v2': '13'}


def test_spectator_completes_round(engine, voter):
    # Scenario D
    room = _room_with(engine, voter, 'a', 'b', auto_reveal=True)
    engine.vote('abc', 'a', '3')
    assert not room.round.revealed

    engine.set_role('abc', 'b', SPECTATOR)
    assert room.round.revealed
    assert [slot.participant_id for slot in room.round.reveal_order] == ['a']


def test_spectator_loses_vote_and_flag(engine, voter):
    room = _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '3')
    engine.reveal('abc')
    engine.vote('abc', 'a', '5')
    assert room.round.cheaters == {'a'}

    engine.set_role('abc', 'a', SPECTATOR)
    assert 'a' not in room.round.votes
    assert room.round.cheaters == set()
    assert room.participants['a'].role == SPECTATOR

    assert engine.vote('abc', 'a', '8') is False
    assert 'a' not in room.round.votes

    engine.set_role('abc', 'a', VOTER)
    assert engine.vote('abc', 'a', '8') is True


def test_vote_from_stranger_is_ignored(engine, broadcaster, voter):
    room = _room_with(engine, voter, 'a')
    broadcaster.clear()
    assert engine.vote('abc', 'zz', '1') is False
    assert room.round.votes == {}
    assert broadcaster.sent == []


def test_vote_in_missing_room(engine):
    with pytest.raises(RoomNotFound):
        engine.vote('nope', 'a', '1')


def test_reveal_requires_votes(engine, broadcaster, voter):
    room = _room_with(engine, voter, 'a')
    assert engine.reveal('abc') is False
    assert not room.round.revealed
    assert broadcaster.events('revealed') == []


def test_reveal_is_idempotent(engine, broadcaster, voter):
    room = _room_with(engine, voter, 'a', 'b', 'c')
    for sid, value in (('a', '1'), ('b', '2'), ('c', '3')):
        engine.vote('abc', sid, value)
    assert engine.reveal('abc') is True
    engine.vote('abc', 'b', '5')
    first_order = [s.to_dict() for s in room.round.reveal_order]

    assert engine.reveal('abc') is False
    assert [s.to_dict() for s in room.round.reveal_order] == first_order
    assert room.round.cheaters == {'b'}
    assert len(broadcaster.events('revealed')) == 1


def test_reveal_reset_round_trip(engine, voter):
    room = _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '1')
    engine.vote('abc', 'b', '2')
    engine.reveal('abc')
    engine.vote('abc', 'a', '3')
    engine.reset('abc')
    engine.vote('abc', 'b', '8')

    assert not room.round.revealed
    assert room.round.cheaters == set()
    assert room.round.votes == {'b': '8'}
    assert room.round.reveal_order == []


def test_reset_is_idempotent(engine, broadcaster, voter):
    room = _room_with(engine, voter, 'a')
    engine.reset('abc')
    engine.reset('abc')
    assert not room.round.revealed
    assert len(broadcaster.events('reset', ('room', 'abc'))) == 2


def test_card_scale_forfeits_round(engine, broadcaster, voter):
    room = _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '5')
    engine.reveal('abc')
    engine.vote('abc', 'b', '8')
    broadcaster.clear()

    engine.set_card_scale('abc', TSHIRT)
    assert room.settings.card_scale == TSHIRT
    assert room.round.votes == {}
    assert not room.round.revealed
    assert room.round.cheaters == set()
    assert [e for (_, e, _) in broadcaster.sent] == [
        'reset', 'votes-updated', 'cheaters-updated', 'room-settings-updated',
    ]
    assert broadcaster.events('room-settings-updated')[-1] == {
        'autoReveal': False, 'cardScale': 'tshirt', 'tShirtMode': True,
    }


def test_enabling_auto_reveal_reveals_complete_round(engine, voter):
    room = _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '1')
    engine.vote('abc', 'b', '2')
    assert not room.round.revealed

    engine.set_auto_reveal('abc', True)
    assert room.settings.auto_reveal
    assert room.round.revealed


def test_enabling_auto_reveal_waits_for_missing_votes(engine, voter):
    room = _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '1')
    engine.set_auto_reveal('abc', True)
    assert not room.round.revealed


def test_non_member_actor_is_ignored(engine, voter):
    room = _room_with(engine, voter, 'a')
    engine.vote('abc', 'a', '1')
    assert engine.reveal('abc', actor_id='stranger') is False
    assert engine.reset('abc', actor_id='stranger') is False
    assert engine.set_card_scale('abc', TSHIRT, actor_id='stranger') is False
    assert engine.set_auto_reveal('abc', True, actor_id='stranger') is False
    assert room.round.votes == {'a': '1'}
    assert not room.settings.auto_reveal
    assert engine.reveal('abc', actor_id='a') is True


def test_leave_removes_vote_and_flag(engine, broadcaster, voter):
    room = _room_with(engine, voter, 'a', 'b')
    engine.vote('abc', 'a', '1')
    engine.reveal('abc')
    engine.vote('abc', 'b', '2')
    assert engine.leave('abc', 'b') is True

    assert list(room.participants) == ['a']
    assert room.round.votes == {'a': '1'}
    assert room.round.cheaters == set()
    assert 'b' not in broadcaster.groups['abc']
    assert engine.registry.rooms_of('b') == set()


def test_last_leave_deletes_room(engine, broadcaster, voter):
    # Scenario F
    _room_with(engine, voter, 'a')
    engine.vote('abc', 'a', '1')
    engine.leave('abc', 'a')

    assert not engine.store.exists('abc')
    assert broadcaster.events('public-rooms-updated')[-1] == []
    with pytest.raises(RoomNotFound):
        engine.join('abc', voter('b'))

    room = engine.join_or_create('abc', voter('b'))
    assert room.round.votes == {}
    assert list(room.participants) == ['b']


def test_leave_unknown_room_is_quiet(engine, broadcaster):
    assert engine.leave('nope', 'a') is False
    assert broadcaster.events('public-rooms-updated') == []


def test_disconnect_leaves_every_room(engine, voter):
    _room_with(engine, voter, 'a', 'b', room_id='one')
    _room_with(engine, voter, 'a', room_id='two')
    engine.vote('one', 'a', '1')

    engine.disconnect('a')
    assert engine.store.get_room('one').round.votes == {}
    assert list(engine.store.get_room('one').participants) == ['b']
    assert not engine.store.exists('two')
    assert 'a' not in engine.registry


def test_join_or_create_visibility(engine, voter):
    engine.join_or_create('secret', voter('a'), visibility=PRIVATE)
    engine.join_or_create('open', voter('b'))
    assert not engine.store.get_room('secret').is_public
    assert engine.directory.listing() == [{'roomId': 'open', 'count': 1}]


def test_join_or_create_joins_existing(engine, broadcaster, voter):
    engine.create_room(voter('a'), room_id='abc', visibility=PRIVATE)
    room = engine.join_or_create('abc', voter('b'))
    assert list(room.participants) == ['a', 'b']
    # visibility is fixed at creation
    assert room.visibility == PRIVATE
    assert broadcaster.events('room-created', ('sid', 'b')) == []


def test_failed_group_entry_commits_nothing(engine, broadcaster, voter, monkeypatch):
    _room_with(engine, voter, 'a')

    def gone(sid, room_id):
        raise ValueError('sid is not connected to requested namespace')

    monkeypatch.setattr(broadcaster, 'enter', gone)
    broadcaster.clear()

    with pytest.raises(ValueError):
        engine.join('abc', voter('dead'))
    assert list(engine.store.get_room('abc').participants) == ['a']
    assert engine.registry.rooms_of('dead') == set()

    with pytest.raises(ValueError):
        engine.join_or_create('fresh', voter('dead'))
    assert not engine.store.exists('fresh')

    with pytest.raises(ValueError):
        engine.create_room(voter('dead'), room_id='fresh')
    assert not engine.store.exists('fresh')
    assert broadcaster.sent == []
