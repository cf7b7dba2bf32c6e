import logging
from typing import Any, Callable, Dict, Optional

from pairplay.errors import LocalValidationFailure
from pairplay.games import GameRules
from pairplay.models import Intent, SessionStatus
from pairplay.store import SessionStore

logger = logging.getLogger(__name__)


class MoveSubmitter:
    """Pre-checks a candidate move and forwards it as an intent.

    A move reaches the network only when the session is active, it is our
    turn and the game kind's shape check passes. Anything else is rejected
    with feedback and no network call. The store is never touched: the
    board changes only when the service echoes an update.
    """

    def __init__(self, store: SessionStore, rules: GameRules, self_id: str,
                 send: Callable[[Intent], None], on_feedback: Optional[Callable[[str], None]] = None):
        self.store = store
        self.rules = rules
        self.self_id = str(self_id)
        self._send = send
        self._on_feedback = on_feedback
        self.buffer = ''

    def _check(self, move: Dict[str, Any]) -> Dict[str, Any]:
        session = self.store.session
        if session is None:
            raise LocalValidationFailure('No game loaded yet')
        if session.game_kind != self.rules.kind:
            raise LocalValidationFailure(f'This screen plays {self.rules.kind.value}, not {session.game_kind.value}')
        if session.status != SessionStatus.ACTIVE:
            raise LocalValidationFailure('The game is not in progress')
        if session.current_turn != self.self_id:
            raise LocalValidationFailure("It's your partner's turn")
        if not isinstance(move, dict):
            raise LocalValidationFailure('Unrecognised move')
        return self.rules.validate_move(session, move, self.self_id)

    def reject(self, reason: str) -> None:
        logger.debug(f'[move-rejected] reason={reason}')
        if self._on_feedback is not None:
            self._on_feedback(reason)

    def submit(self, move: Dict[str, Any]) -> bool:
        """Forward `move` if it passes the local checks; return whether it was sent."""
        try:
            wire_move = self._check(move)
        except LocalValidationFailure as exc:
            self.reject(str(exc))
            return False
        session = self.store.session
        self._send(Intent.move(session.id, wire_move))
        self.buffer = ''
        logger.info(f'[move] session={session.id} move={wire_move}')
        return True

    def submit_text(self, text: Optional[str] = None) -> bool:
        """Parse typed input (or the pending buffer) and submit it."""
        if text is not None:
            self.buffer = text
        session = self.store.session
        if session is None:
            self.reject('No game loaded yet')
            return False
        try:
            move = self.rules.parse_move(self.buffer, session)
        except LocalValidationFailure as exc:
            self.reject(str(exc))
            return False
        return self.submit(move)
