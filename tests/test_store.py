import pytest

from pairplay.errors import ProtocolError
from pairplay.models import InboundEvent, SessionStatus
from pairplay.store import SessionStore

from helpers import ME, PARTNER, game_payload, make_session


def update(**kwargs):
    return InboundEvent('update', {'game': game_payload(**kwargs)})


@pytest.fixture()
def store():
    s = SessionStore()
    s.seed(make_session())
    return s


def test_update_replaces_session_wholesale(store):
    before = store.session
    after = store.apply_event(update(turn=PARTNER, started=5))
    assert after is store.session
    assert after is not before
    assert before.current_turn == ME
    assert store.session.current_turn == PARTNER


def test_applying_same_update_twice_is_idempotent(store):
    event = update(turn=PARTNER, started=5)
    store.apply_event(event)
    once = store.session
    store.apply_event(event)
    assert store.session == once


def test_older_snapshot_is_dropped(store):
    store.apply_event(update(turn=PARTNER, started=10))
    assert store.apply_event(update(turn=ME, started=5)) is None
    assert store.session.current_turn == PARTNER


def test_terminal_session_does_not_revert(store):
    store.apply_event(InboundEvent('ended', {'gameId': 'g1', 'winner': ME, 'isDraw': False}))
    assert store.apply_event(update(started=0)) is None
    assert store.session.status == SessionStatus.COMPLETED


def test_events_for_other_sessions_are_ignored(store):
    assert store.apply_event(update(game_id='other', turn=PARTNER)) is None
    assert store.apply_event(InboundEvent('timeout', {'gameId': 'other', 'winnerId': ME})) is None
    assert store.session.id == 'g1'
    assert store.session.status == SessionStatus.ACTIVE


def test_ended_draw(store):
    store.apply_event(InboundEvent('ended', {'gameId': 'g1', 'isDraw': True}))
    assert store.session.status == SessionStatus.COMPLETED
    assert store.session.is_draw
    assert store.session.winner is None


def test_timeout_caches_winner(store):
    store.apply_event(InboundEvent('timeout', {'winnerId': ME}))
    assert store.session.status == SessionStatus.TIMED_OUT
    assert store.session.winner == ME
    assert store.session.current_turn is None


def test_forfeited_by_partner_names_us_the_winner(store):
    store.apply_event(InboundEvent('forfeited', {'gameId': 'g1', 'forfeitedBy': PARTNER}))
    assert store.session.status == SessionStatus.ABANDONED
    assert store.session.winner == ME


def test_forfeited_without_any_outcome_has_no_winner(store):
    store.apply_event(InboundEvent('forfeited', {'gameId': 'g1'}))
    assert store.session.status == SessionStatus.ABANDONED
    assert store.session.winner is None


def test_forfeited_by_stranger_is_malformed(store):
    before = store.session
    with pytest.raises(ProtocolError):
        store.apply_event(InboundEvent('forfeited', {'gameId': 'g1', 'forfeitedBy': 'stranger'}))
    assert store.session is before


def test_terminal_event_with_snapshot_is_used_verbatim(store):
    snapshot = game_payload(status='abandoned', winner=ME, player1Score=3)
    store.apply_event(InboundEvent('forfeited', {'gameId': 'g1', 'forfeitedBy': PARTNER, 'game': snapshot}))
    assert store.session.winner == ME
    assert store.session.player1_score == 3


def test_malformed_payloads_leave_cache_untouched(store):
    before = store.session
    with pytest.raises(ProtocolError):
        store.apply_event(InboundEvent('update', {'gameId': 'g1'}))
    with pytest.raises(ProtocolError):
        store.apply_event(InboundEvent('ended', {'gameId': 'g1', 'isDraw': False}))
    assert store.session is before


def test_terminal_event_before_any_snapshot():
    with pytest.raises(ProtocolError):
        SessionStore().apply_event(InboundEvent('timeout', {'winnerId': ME}))


def test_disconnect_marks_stale_but_keeps_session(store):
    before = store.session
    store.apply_event(InboundEvent('disconnect'))
    assert store.stale
    assert store.session is before
    store.apply_event(update(started=1))
    assert not store.stale


def test_error_event_does_not_touch_status(store):
    before = store.session
    assert store.apply_event(InboundEvent('error', {'message': 'Not your turn'})) is None
    assert store.session is before


def test_bare_snapshot_for_previous_session_is_ignored():
    store = SessionStore()
    store.seed(make_session(game_id='new', status='waiting'))
    late = InboundEvent('update', game_payload(game_id='old', turn=PARTNER, started=900))
    assert late.game_id == 'old'
    assert store.apply_event(late) is None
    assert store.session.id == 'new'


def test_snapshot_under_mismatched_game_id_is_ignored(store):
    event = InboundEvent('ended', {'gameId': 'g1', 'game': game_payload(game_id='other', status='completed',
                                                                        winner=ME)})
    assert store.apply_event(event) is None
    assert store.session.id == 'g1'
    assert store.session.status == SessionStatus.ACTIVE


def test_second_terminal_outcome_does_not_overwrite_first(store):
    store.apply_event(InboundEvent('ended', {'gameId': 'g1', 'winner': ME, 'isDraw': False}))
    assert store.apply_event(InboundEvent('forfeited', {'gameId': 'g1', 'forfeitedBy': ME})) is None
    assert store.apply_event(InboundEvent('timeout', {'gameId': 'g1', 'winnerId': PARTNER})) is None
    assert store.session.status == SessionStatus.COMPLETED
    assert store.session.winner == ME


def test_stale_terminal_snapshot_is_dropped(store):
    store.apply_event(update(turn=PARTNER, started=20))
    old = game_payload(status='timeout', winner=PARTNER, started=10)
    assert store.apply_event(InboundEvent('timeout', {'gameId': 'g1', 'winnerId': PARTNER, 'game': old})) is None
    assert store.session.status == SessionStatus.ACTIVE
    assert store.session.current_turn == PARTNER
