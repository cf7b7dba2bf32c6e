"""Per-kind game capabilities.

Each game kind contributes a small GameRules object (move pre-validation,
input parsing, text rendering). The session protocol itself is generic and
lives outside this package; results are adjudicated by the service.
"""

from pairplay.config import Config
from pairplay.games.base import GameRules
from pairplay.games.grid import ConnectFour, TicTacToe
from pairplay.games.word import WordGuess
from pairplay.models import GameKind, parse_kind


def get_rules(kind, config=Config) -> GameRules:
    kind = parse_kind(kind)
    if kind == GameKind.TIC_TAC_TOE:
        return TicTacToe()
    if kind == GameKind.CONNECT_FOUR:
        return ConnectFour()
    return WordGuess(word_length=config.WORD_LENGTH, max_attempts=config.MAX_ATTEMPTS)


__all__ = ['GameRules', 'TicTacToe', 'ConnectFour', 'WordGuess', 'get_rules']
