import logging
from typing import Optional

from pairplay.errors import ProtocolError
from pairplay.models import InboundEvent, Session, SessionStatus

logger = logging.getLogger(__name__)

SNAPSHOT_EVENTS = ('state', 'update')
TERMINAL_EVENTS = {
    'ended': SessionStatus.COMPLETED,
    'timeout': SessionStatus.TIMED_OUT,
    'forfeited': SessionStatus.ABANDONED,
}


class SessionStore:
    """Cached view of the current session.

    `apply_event` is the only mutation path for inbound traffic, and it only
    ever swaps the whole Session object; readers never see a partially
    updated or locally predicted session.
    """

    def __init__(self):
        self._session: Optional[Session] = None
        self._stale = False

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def stale(self) -> bool:
        return self._stale

    def seed(self, session: Session) -> None:
        """Install a snapshot fetched over request/response (find-or-create, rematch)."""
        self._session = session
        self._stale = False
        logger.info(f'[seed] session={session.id} kind={session.game_kind.value} status={session.status.value}')

    def clear(self) -> None:
        self._session = None
        self._stale = False

    def apply_event(self, event: InboundEvent) -> Optional[Session]:
        """Apply one inbound event; return the session it installed, if any."""
        if event.name == 'disconnect':
            self._stale = True
            logger.warning(f'[stale] session={self._session.id if self._session else None} transport disconnected')
            return None
        if event.name == 'error':
            return None

        current = self._session
        if current is not None and event.game_id is not None and event.game_id != current.id:
            logger.info(f'[event-drop] event={event.name} session={event.game_id} cached={current.id}')
            return None

        if event.name in SNAPSHOT_EVENTS:
            snapshot = event.snapshot()
            if snapshot is None:
                raise ProtocolError(f'{event.name} event carries no session snapshot')
            return self._accept(event, Session.from_dict(snapshot), current)

        if event.name in TERMINAL_EVENTS:
            snapshot = event.snapshot()
            if snapshot is not None:
                return self._accept(event, Session.from_dict(snapshot), current)
            if current is None:
                raise ProtocolError(f'{event.name} event arrived before any session snapshot')
            if current.is_terminal:
                logger.warning(f'[event-drop] event={event.name} session={current.id} already {current.status.value}')
                return None
            return self._install(event, self._outcome(event, current))

        logger.info(f'[event-ignore] event={event.name}')
        return None

    def _accept(self, event: InboundEvent, incoming: Session, current: Optional[Session]) -> Optional[Session]:
        """Install a full snapshot unless it is for another session or older than the cache."""
        if current is None:
            return self._install(event, incoming)
        if incoming.id != current.id:
            logger.info(f'[event-drop] event={event.name} session={incoming.id} cached={current.id}')
            return None
        if incoming.turn_started_at < current.turn_started_at:
            logger.warning(
                f'[event-drop] event={event.name} session={incoming.id} '
                f'turn_started_at={incoming.turn_started_at} older than {current.turn_started_at}'
            )
            return None
        if current.is_terminal and not incoming.is_terminal:
            logger.warning(f'[event-drop] event={event.name} session={incoming.id} already {current.status.value}')
            return None
        return self._install(event, incoming)

    def _outcome(self, event: InboundEvent, current: Session) -> Session:
        payload = event.payload
        status = TERMINAL_EVENTS[event.name]
        if event.name == 'timeout':
            winner = payload.get('winnerId', payload.get('winner'))
        else:
            winner = payload.get('winner')
        if event.name == 'forfeited' and winner is None and payload.get('forfeitedBy') is not None:
            try:
                winner = current.partner_of(payload['forfeitedBy'])
            except ValueError as exc:
                raise ProtocolError(str(exc)) from exc
        is_draw = bool(payload.get('isDraw', False)) if event.name != 'forfeited' else False
        return current.with_outcome(status, winner=winner, is_draw=is_draw)

    def _install(self, event: InboundEvent, session: Session) -> Session:
        previous = self._session
        self._session = session
        self._stale = False
        if previous is None or previous.status != session.status or previous.current_turn != session.current_turn:
            logger.info(
                f'[apply] event={event.name} session={session.id} status={session.status.value} '
                f'turn={session.current_turn} winner={session.winner} draw={session.is_draw}'
            )
        return session
