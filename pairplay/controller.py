"""Session lifecycle for one game screen.

Phases: uninitialized -> loading -> {waiting, active} -> {completed,
timedOut, abandoned}. Rematch goes from a terminal phase back to loading with
a brand-new session. `failed` and `unauthorized` are screen-level failure
phases, not session statuses.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

from pairplay.api.games import GamesApi
from pairplay.config import Config
from pairplay.connection import ConnectionHandle, ConnectionManager
from pairplay.errors import (
    ApiError,
    AuthFailure,
    GameClientError,
    ProtocolError,
    RejectedMove,
    SessionUnavailable,
    TransportFailure,
)
from pairplay.games import GameRules, get_rules
from pairplay.models import InboundEvent, Intent, Session, SessionStatus, parse_kind
from pairplay.store import SessionStore
from pairplay.submitter import MoveSubmitter
from pairplay.timer import TurnTimer

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    UNINITIALIZED = 'uninitialized'
    LOADING = 'loading'
    WAITING = 'waiting'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    TIMED_OUT = 'timedOut'
    ABANDONED = 'abandoned'
    FAILED = 'failed'
    UNAUTHORIZED = 'unauthorized'


PHASE_FOR_STATUS = {
    SessionStatus.WAITING: Phase.WAITING,
    SessionStatus.ACTIVE: Phase.ACTIVE,
    SessionStatus.COMPLETED: Phase.COMPLETED,
    SessionStatus.TIMED_OUT: Phase.TIMED_OUT,
    SessionStatus.ABANDONED: Phase.ABANDONED,
}

TERMINAL_PHASES = frozenset({Phase.COMPLETED, Phase.TIMED_OUT, Phase.ABANDONED})


class SessionController:
    def __init__(self, kind, self_id: str, partner_id: str, api: GamesApi, connections: ConnectionManager,
                 store: Optional[SessionStore] = None, timer: Optional[TurnTimer] = None,
                 rules: Optional[GameRules] = None, config=Config,
                 on_notice: Optional[Callable[[str, str], None]] = None):
        self.kind = parse_kind(kind)
        self.self_id = str(self_id)
        self.partner_id = str(partner_id)
        self.api = api
        self.connections = connections
        self.store = store or SessionStore()
        self.timer = timer or TurnTimer(config.TURN_DURATION_SEC)
        self.rules = rules or get_rules(self.kind, config)
        self.submitter = MoveSubmitter(self.store, self.rules, self.self_id, self._send,
                                       on_feedback=lambda message: self._notify('invalid', message))
        self.handle: Optional[ConnectionHandle] = None
        self.phase = Phase.UNINITIALIZED
        self.previous_session: Optional[Session] = None
        self.last_error: Optional[GameClientError] = None
        self.notices: List[Tuple[str, str]] = []
        self._on_notice = on_notice

    @property
    def session(self) -> Optional[Session]:
        return self.store.session

    # ---- notices ----

    def _notify(self, kind: str, message: str) -> None:
        self.notices.append((kind, message))
        if self._on_notice is not None:
            self._on_notice(kind, message)

    def _fail(self, phase: Optional[Phase], exc: GameClientError) -> None:
        if phase is not None:
            self.phase = phase
        self.last_error = exc
        kind = {
            AuthFailure: 'auth',
            TransportFailure: 'transport',
            SessionUnavailable: 'unavailable',
        }.get(type(exc), 'error')
        logger.warning(f'[{kind}] phase={self.phase.value} error={exc}')
        self._notify(kind, str(exc))

    # ---- lifecycle ----

    def activate(self, credential: Optional[str]) -> Session:
        """Connect, then find-or-create the session and join its channel."""
        if self.phase not in (Phase.UNINITIALIZED, Phase.FAILED, Phase.UNAUTHORIZED):
            raise GameClientError(f'screen already activated (phase={self.phase.value})')
        self._open(credential)
        return self.acquire()

    def _open(self, credential: Optional[str]) -> None:
        if self.handle is not None:
            self.handle.close()
            self.handle = None
        try:
            self.handle = self.connections.connect(credential)
        except AuthFailure as exc:
            self._fail(Phase.UNAUTHORIZED, exc)
            raise
        except TransportFailure as exc:
            self._fail(None, exc)
            raise
        self.phase = Phase.LOADING

    def acquire(self) -> Session:
        session = self._find_or_create()
        self._enter(session)
        return session

    def _find_or_create(self) -> Session:
        session = None
        try:
            session = self.api.get_active_game(self.kind)
        except AuthFailure as exc:
            self._fail(Phase.UNAUTHORIZED, exc)
            raise
        except (ApiError, TransportFailure, ProtocolError) as exc:
            logger.warning(f'[find-active] kind={self.kind.value} error={exc}')
        if session is not None and (session.is_terminal or self.self_id not in session.players):
            session = None
        if session is not None:
            logger.info(f'[find-active] session={session.id} status={session.status.value}')
            return session
        return self._create(self.partner_id)

    def _create(self, partner_id: str) -> Session:
        try:
            return self.api.create_game(self.kind, partner_id)
        except AuthFailure as exc:
            self._fail(Phase.UNAUTHORIZED, exc)
            raise
        except (ApiError, TransportFailure, ProtocolError) as exc:
            error = SessionUnavailable(f'Could not start a {self.kind.value} game: {exc}')
            self._fail(Phase.FAILED, error)
            raise error from exc

    def _enter(self, session: Session) -> None:
        self.store.seed(session)
        self._sync(session, seeded=True)
        try:
            if self.handle is None:
                raise TransportFailure('not connected')
            self.handle.join_session(session.id)
        except TransportFailure as exc:
            self._fail(None, exc)
            raise

    def _sync(self, session: Session, seeded: bool = False) -> None:
        previous_phase = self.phase
        self.phase = PHASE_FOR_STATUS[session.status]
        if session.status == SessionStatus.ACTIVE:
            if seeded:
                self.timer.resume(session.turn_started_at)
            elif not self.timer.running or session.turn_started_at != self.timer.turn_started_at:
                # A new turn restarts the countdown at full duration
                self.timer.reset(session.turn_started_at)
        else:
            self.timer.stop()
        if session.is_terminal and previous_phase not in TERMINAL_PHASES:
            self._notify('ended', self.describe_outcome(session))

    def describe_outcome(self, session: Session) -> str:
        if session.is_draw:
            return "It's a draw!"
        if session.winner is None:
            return 'The game was abandoned'
        won = session.winner == self.self_id
        if session.status == SessionStatus.TIMED_OUT:
            return 'Your partner ran out of time!' if won else 'You ran out of time!'
        if session.status == SessionStatus.ABANDONED:
            return 'Your partner forfeited' if won else 'You forfeited'
        return 'You win!' if won else 'You lost'

    # ---- inbound ----

    def pump(self) -> int:
        """Apply every queued inbound event in delivery order."""
        if self.handle is None:
            return 0
        events = self.handle.poll()
        for event in events:
            self._apply(event)
        return len(events)

    def _apply(self, event: InboundEvent) -> None:
        if event.name == 'error':
            message = event.payload.get('message') or event.payload.get('error') or 'Request rejected'
            self.last_error = RejectedMove(message)
            logger.info(f'[rejected] session={self.session.id if self.session else None} message={message}')
            self._notify('rejected', message)
            return
        try:
            applied = self.store.apply_event(event)
        except ProtocolError as exc:
            logger.warning(f'[protocol] event={event.name} error={exc}')
            self._notify('protocol', str(exc))
            return
        if event.name == 'disconnect':
            self.timer.stop()
            self._fail(None, TransportFailure('Connection lost; refresh to resume'))
            return
        if applied is not None:
            self._sync(applied)

    def tick(self) -> Optional[float]:
        if self.phase != Phase.ACTIVE:
            return None
        return self.timer.tick()

    # ---- outbound ----

    def _send(self, intent: Intent) -> None:
        if self.handle is None:
            raise TransportFailure(f'cannot send {intent.name}: not connected')
        self.handle.send(intent)

    def submit(self, move) -> bool:
        try:
            return self.submitter.submit(move)
        except TransportFailure as exc:
            self._fail(None, exc)
            raise

    def submit_text(self, text: Optional[str] = None) -> bool:
        try:
            return self.submitter.submit_text(text)
        except TransportFailure as exc:
            self._fail(None, exc)
            raise

    def forfeit(self) -> bool:
        session = self.session
        if session is None or session.is_terminal:
            self._notify('invalid', 'There is no game in progress to forfeit')
            return False
        try:
            self._send(Intent.forfeit(session.id))
        except TransportFailure as exc:
            self._fail(None, exc)
            raise
        logger.info(f'[forfeit] session={session.id}')
        return True

    def play_again(self) -> Optional[Session]:
        """Rematch: a new session with the same two players and game kind."""
        old = self.session
        if old is None or not old.is_terminal:
            self._notify('invalid', 'Finish the current game first')
            return None
        self.phase = Phase.LOADING
        session = self._create(old.partner_of(self.self_id))
        self.previous_session = old
        self._enter(session)
        logger.info(f'[rematch] previous={old.id} session={session.id}')
        return session

    def refresh(self, credential: Optional[str]) -> Session:
        """Explicit recovery after a dropped connection: reconnect, re-acquire, re-join."""
        self._open(credential)
        return self.acquire()

    def teardown(self) -> None:
        if self.handle is not None:
            self.handle.close()
            self.handle = None
        self.timer.stop()
