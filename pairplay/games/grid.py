"""Grid placement games: tic-tac-toe and connect four."""

from typing import Any, Dict, List, Optional

from pairplay.errors import LocalValidationFailure
from pairplay.games.base import GameRules, as_index
from pairplay.models import GameKind, Session


def read_board(state: Dict[str, Any], rows: int, cols: int) -> List[List[Optional[str]]]:
    """Return the cached board, or an empty one when the service has not sent it yet."""
    board = state.get('board')
    if not board:
        return [[None] * cols for _ in range(rows)]
    if len(board) != rows or any(len(row) != cols for row in board):
        raise LocalValidationFailure(f'cached board is not {rows}x{cols}')
    return board


def render_board(board, marks: Dict[str, str]) -> str:
    lines = []
    for row in board:
        lines.append(' '.join(marks.get(cell, cell) if cell else '.' for cell in row))
    return '\n'.join(lines)


def _turn_line(session: Session, self_id: str, labels: Dict[str, str]) -> str:
    if session.is_terminal:
        if session.is_draw:
            return 'Draw!'
        if session.winner is None:
            return f'Game {session.status.value}'
        return 'You win!' if session.winner == self_id else 'You lost'
    if session.current_turn is None:
        return 'Waiting for your partner to join'
    mine = labels.get(self_id)
    suffix = f' ({mine})' if mine else ''
    return f'Your turn{suffix}' if session.current_turn == self_id else "Partner's turn"


class TicTacToe(GameRules):
    kind = GameKind.TIC_TAC_TOE
    size = 3

    def validate_move(self, session, move, self_id):
        if 'cell' in move:
            cell = move['cell']
            if isinstance(cell, (str, bytes)) or not hasattr(cell, '__len__') or len(cell) != 2:
                raise LocalValidationFailure('cell must be a (row, col) pair')
            row, col = cell
        elif 'row' in move and 'col' in move:
            row, col = move['row'], move['col']
        else:
            raise LocalValidationFailure('tic-tac-toe moves need a cell')
        row = as_index(row, self.size, 'row')
        col = as_index(col, self.size, 'column')
        board = read_board(session.state, self.size, self.size)
        if board[row][col] is not None:
            raise LocalValidationFailure('That cell is already taken')
        return {'cell': [row, col]}

    def parse_move(self, text, session):
        parts = text.replace(',', ' ').split()
        if len(parts) != 2:
            raise LocalValidationFailure('enter a move as "row col", e.g. "0 2"')
        return {'cell': [parts[0], parts[1]]}

    def describe_state(self, session, self_id):
        board = read_board(session.state, self.size, self.size)
        symbols = session.state.get('symbols') or {}
        return '\n'.join([render_board(board, {}), _turn_line(session, self_id, symbols)])


class ConnectFour(GameRules):
    kind = GameKind.CONNECT_FOUR
    rows = 6
    cols = 7
    marks = {'red': 'R', 'yellow': 'Y'}

    def validate_move(self, session, move, self_id):
        if 'column' not in move:
            raise LocalValidationFailure('connect four moves need a column')
        column = as_index(move['column'], self.cols, 'column')
        board = read_board(session.state, self.rows, self.cols)
        # Top row filled means the column is full
        if board[0][column] is not None:
            raise LocalValidationFailure('That column is full')
        return {'column': column}

    def parse_move(self, text, session):
        return {'column': text.strip()}

    def describe_state(self, session, self_id):
        board = read_board(session.state, self.rows, self.cols)
        colors = session.state.get('colors') or {}
        header = ' '.join(str(c) for c in range(self.cols))
        return '\n'.join([header, render_board(board, self.marks), _turn_line(session, self_id, colors)])
