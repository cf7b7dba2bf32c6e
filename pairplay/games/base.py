from typing import Any, Dict

from pairplay.errors import LocalValidationFailure
from pairplay.models import GameKind, Session


class GameRules:
    """Capability object for one game kind.

    Only shape and sub-phase checks live here. Turn ownership and session
    status are checked once, generically, by the MoveSubmitter; results are
    always computed by the service.
    """

    kind: GameKind

    def validate_move(self, session: Session, move: Dict[str, Any], self_id: str) -> Dict[str, Any]:
        """Return the wire form of `move` or raise LocalValidationFailure."""
        raise NotImplementedError

    def parse_move(self, text: str, session: Session) -> Dict[str, Any]:
        """Turn a line of user input into a candidate move."""
        raise NotImplementedError

    def describe_state(self, session: Session, self_id: str) -> str:
        raise NotImplementedError

    def is_valid_move(self, session: Session, move: Dict[str, Any], self_id: str) -> bool:
        try:
            self.validate_move(session, move, self_id)
        except LocalValidationFailure:
            return False
        return True


def as_index(value, upper: int, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except (TypeError, ValueError):
            raise LocalValidationFailure(f'{label} must be a number')
    if not 0 <= value < upper:
        raise LocalValidationFailure(f'{label} must be between 0 and {upper - 1}')
    return value
