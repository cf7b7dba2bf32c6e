from datetime import datetime, timedelta, timezone

from socketio import exceptions as sio_exceptions

from pairplay.models import Session

ME = 'u-me'
PARTNER = 'u-partner'
BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def iso(seconds=0):
    return (BASE_TIME + timedelta(seconds=seconds)).isoformat().replace('+00:00', 'Z')


def empty_board(rows, cols):
    return [[None] * cols for _ in range(rows)]


def game_payload(game_id='g1', kind='tic_tac_toe', status='active', turn=ME, started=0, state=None, **extra):
    if state is None:
        if kind == 'tic_tac_toe':
            state = {'board': empty_board(3, 3), 'symbols': {ME: 'X', PARTNER: 'O'}}
        elif kind == 'connect_four':
            state = {'board': empty_board(6, 7), 'colors': {ME: 'red', PARTNER: 'yellow'}}
        else:
            state = {'phase': 'setting', 'setter': ME, 'guesser': PARTNER, 'guesses': []}
    payload = {
        '_id': game_id,
        'coupleId': 'c1',
        'gameType': kind,
        'status': status,
        'player1': ME,
        'player2': PARTNER,
        'currentTurn': turn if status == 'active' else None,
        'gameState': state,
        'player1Score': 0,
        'player2Score': 0,
        'winner': None,
        'isDraw': False,
        'turnStartedAt': iso(started),
        'lastMoveAt': iso(started),
        'createdAt': iso(0),
    }
    payload.update(extra)
    return payload


def make_session(**kwargs):
    return Session.from_dict(game_payload(**kwargs))


class FakeSocketClient:
    """Stands in for socketio.Client; the test plays the service side."""

    def __init__(self, refuse=None, unreachable=False):
        self.handlers = {}
        self.emitted = []
        self.connected = False
        self.connect_kwargs = None
        self.refuse = refuse
        self.unreachable = unreachable
        self.disconnect_calls = 0

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    def connect(self, url, **kwargs):
        self.connect_kwargs = dict(kwargs, url=url)
        if self.refuse is not None:
            self.handlers['connect_error'](self.refuse)
            raise sio_exceptions.ConnectionError('One or more namespaces failed to connect')
        if self.unreachable:
            self.handlers['connect_error']('Connection refused by the server')
            raise sio_exceptions.ConnectionError('Connection refused by the server')
        self.connected = True

    def emit(self, event, data=None, namespace=None):
        self.emitted.append((event, data))

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False

    def push(self, event, data=None):
        self.handlers[event](data)

    def drop(self, reason='transport close'):
        self.connected = False
        self.handlers['disconnect'](reason)

    def names(self):
        return [name for name, _ in self.emitted]


class FakeApi:
    def __init__(self, active=None, created=None, create_error=None, active_error=None):
        self.active = active
        self.created = list(created or [])
        self.create_error = create_error
        self.active_error = active_error
        self.calls = []

    def get_active_game(self, kind=None):
        self.calls.append(('active', kind))
        if self.active_error is not None:
            raise self.active_error
        return self.active

    def create_game(self, kind, partner_id):
        self.calls.append(('create', kind, partner_id))
        if self.create_error is not None:
            raise self.create_error
        return self.created.pop(0)
