import copy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pairplay.errors import ProtocolError


class GameKind(str, Enum):
    TIC_TAC_TOE = 'tic_tac_toe'
    CONNECT_FOUR = 'connect_four'
    WORD_GUESS = 'word_guess'


class SessionStatus(str, Enum):
    WAITING = 'waiting'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    TIMED_OUT = 'timeout'
    ABANDONED = 'abandoned'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.TIMED_OUT, SessionStatus.ABANDONED})

# Spellings seen on the wire besides the enum values
_STATUS_ALIASES = {'timedOut': SessionStatus.TIMED_OUT, 'timed_out': SessionStatus.TIMED_OUT}


def parse_status(value) -> SessionStatus:
    if isinstance(value, SessionStatus):
        return value
    try:
        return _STATUS_ALIASES.get(value) or SessionStatus(value)
    except (TypeError, ValueError):
        raise ProtocolError(f'unknown session status: {value!r}')


def parse_kind(value) -> GameKind:
    if isinstance(value, GameKind):
        return value
    try:
        return GameKind(value)
    except (TypeError, ValueError):
        raise ProtocolError(f'unknown game kind: {value!r}')


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a service timestamp (ISO-8601 string or epoch millis) into aware UTC."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    else:
        text = str(value)
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ProtocolError(f'bad timestamp: {value!r}')
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def _player_id(value) -> Optional[str]:
    if value is None or value == '':
        return None
    return str(value)


@dataclass(frozen=True)
class Session:
    id: str
    game_kind: GameKind
    status: SessionStatus
    players: Tuple[str, str]
    current_turn: Optional[str]
    turn_started_at: datetime
    state: Dict[str, Any] = field(default_factory=dict)
    winner: Optional[str] = None
    is_draw: bool = False
    # Server-owned counters; never computed locally
    player1_score: int = 0
    player2_score: int = 0
    couple_id: Optional[str] = None
    last_move_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            raise ProtocolError('session payload has no id')
        if len(self.players) != 2 or not all(self.players):
            raise ProtocolError(f'session {self.id} must name exactly two players')
        if self.status == SessionStatus.ACTIVE:
            if self.current_turn not in self.players:
                raise ProtocolError(f'session {self.id} is active but current turn is {self.current_turn!r}')
        elif self.current_turn is not None:
            raise ProtocolError(f'session {self.id} has a current turn while {self.status.value}')
        if self.winner is not None and self.winner not in self.players:
            raise ProtocolError(f'session {self.id} winner {self.winner!r} is not a player')
        if self.winner is not None and self.is_draw:
            raise ProtocolError(f'session {self.id} has both a winner and a draw')
        if self.status in (SessionStatus.COMPLETED, SessionStatus.TIMED_OUT):
            if self.winner is None and not self.is_draw:
                raise ProtocolError(f'session {self.id} is {self.status.value} without an outcome')
        elif self.status != SessionStatus.ABANDONED and (self.winner is not None or self.is_draw):
            raise ProtocolError(f'session {self.id} has an outcome while {self.status.value}')

    @property
    def player1(self) -> str:
        return self.players[0]

    @property
    def player2(self) -> str:
        return self.players[1]

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_turn_of(self, player_id) -> bool:
        return self.status == SessionStatus.ACTIVE and self.current_turn == _player_id(player_id)

    def partner_of(self, player_id) -> str:
        player_id = _player_id(player_id)
        if player_id == self.player1:
            return self.player2
        if player_id == self.player2:
            return self.player1
        raise ValueError(f'{player_id!r} is not a player in session {self.id}')

    def with_outcome(self, status: SessionStatus, winner=None, is_draw=False) -> 'Session':
        """Return a new terminal Session; the receiver is left untouched."""
        return replace(
            self,
            status=status,
            current_turn=None,
            winner=_player_id(winner),
            is_draw=bool(is_draw),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Session':
        if not isinstance(data, dict):
            raise ProtocolError(f'session payload must be an object, got {type(data).__name__}')
        status = parse_status(data.get('status'))
        turn_started_at = parse_timestamp(data.get('turnStartedAt'))
        if turn_started_at is None:
            turn_started_at = parse_timestamp(data.get('createdAt'))
        if turn_started_at is None:
            raise ProtocolError(f"session {data.get('_id')!r} has no turnStartedAt")
        return cls(
            id=str(data.get('_id') or data.get('id') or ''),
            game_kind=parse_kind(data.get('gameType')),
            status=status,
            players=(_player_id(data.get('player1')), _player_id(data.get('player2'))),
            current_turn=_player_id(data.get('currentTurn')) if status == SessionStatus.ACTIVE else None,
            turn_started_at=turn_started_at,
            state=copy.deepcopy(data.get('gameState') or {}),
            winner=_player_id(data.get('winner')),
            is_draw=bool(data.get('isDraw', False)),
            player1_score=int(data.get('player1Score') or 0),
            player2_score=int(data.get('player2Score') or 0),
            couple_id=_player_id(data.get('coupleId')),
            last_move_at=parse_timestamp(data.get('lastMoveAt')),
            created_at=parse_timestamp(data.get('createdAt')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            '_id': self.id,
            'coupleId': self.couple_id,
            'gameType': self.game_kind.value,
            'status': self.status.value,
            'player1': self.player1,
            'player2': self.player2,
            'currentTurn': self.current_turn,
            'gameState': copy.deepcopy(self.state),
            'player1Score': self.player1_score,
            'player2Score': self.player2_score,
            'winner': self.winner,
            'isDraw': self.is_draw,
            'turnStartedAt': _format_timestamp(self.turn_started_at),
            'lastMoveAt': _format_timestamp(self.last_move_at),
            'createdAt': _format_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class Intent:
    """An outbound protocol event. Never authoritative until echoed back."""
    name: str
    payload: Dict[str, Any]

    @classmethod
    def join(cls, session_id: str) -> 'Intent':
        return cls('join', {'gameId': session_id})

    @classmethod
    def move(cls, session_id: str, move: Dict[str, Any]) -> 'Intent':
        return cls('move', {'gameId': session_id, 'move': dict(move)})

    @classmethod
    def forfeit(cls, session_id: str) -> 'Intent':
        return cls('forfeit', {'gameId': session_id})


INBOUND_EVENTS = ('state', 'update', 'ended', 'timeout', 'forfeited', 'error')


@dataclass(frozen=True)
class InboundEvent:
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def game_id(self) -> Optional[str]:
        game_id = self.payload.get('gameId')
        if game_id is None:
            snapshot = self.snapshot()
            if snapshot is not None:
                game_id = snapshot.get('_id')
        return _player_id(game_id)

    def snapshot(self) -> Optional[Dict[str, Any]]:
        """The full session payload carried by this event, if any."""
        game = self.payload.get('game')
        if isinstance(game, dict):
            return game
        if '_id' in self.payload and 'status' in self.payload:
            return self.payload
        return None


@dataclass(frozen=True)
class GameInfo:
    id: str
    name: str
    emoji: str = ''
    description: str = ''
    min_players: int = 2
    max_players: int = 2
    avg_duration: str = ''

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            emoji=data.get('emoji', ''),
            description=data.get('description', ''),
            min_players=int(data.get('minPlayers', 2)),
            max_players=int(data.get('maxPlayers', 2)),
            avg_duration=data.get('avgDuration', ''),
        )


@dataclass(frozen=True)
class KindStats:
    played: int = 0
    player1_wins: int = 0
    player2_wins: int = 0
    draws: int = 0
    total_play_time: int = 0


@dataclass(frozen=True)
class WinStreak:
    player_id: Optional[str] = None
    count: int = 0


@dataclass(frozen=True)
class GameStats:
    couple_id: Optional[str]
    total_games_played: int
    by_kind: Dict[str, KindStats]
    current_win_streak: WinStreak
    longest_win_streak: WinStreak

    @classmethod
    def from_dict(cls, data):
        def streak(raw):
            raw = raw or {}
            return WinStreak(player_id=_player_id(raw.get('playerId')), count=int(raw.get('count') or 0))

        by_kind = {}
        for kind, raw in (data.get('stats') or {}).items():
            by_kind[kind] = KindStats(
                played=int(raw.get('played') or 0),
                player1_wins=int(raw.get('player1Wins') or 0),
                player2_wins=int(raw.get('player2Wins') or 0),
                draws=int(raw.get('draws') or 0),
                total_play_time=int(raw.get('totalPlayTime') or 0),
            )
        return cls(
            couple_id=_player_id(data.get('coupleId')),
            total_games_played=int(data.get('totalGamesPlayed') or 0),
            by_kind=by_kind,
            current_win_streak=streak(data.get('currentWinStreak')),
            longest_win_streak=streak(data.get('longestWinStreak')),
        )


@dataclass(frozen=True)
class HistoryPage:
    games: List[Session]
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def from_dict(cls, data):
        pagination = data.get('pagination') or {}
        games = [Session.from_dict(g) for g in data.get('games') or []]
        return cls(
            games=games,
            page=int(pagination.get('page', 1)),
            limit=int(pagination.get('limit', len(games))),
            total=int(pagination.get('total', len(games))),
            pages=int(pagination.get('pages', 1)),
        )
