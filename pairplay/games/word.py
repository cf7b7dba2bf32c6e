from pairplay.errors import LocalValidationFailure
from pairplay.games.base import GameRules
from pairplay.models import GameKind

SETTING = 'setting'
GUESSING = 'guessing'

RESULT_MARKS = {'correct': '+', 'present': '?', 'absent': '-'}


class WordGuess(GameRules):
    """One partner sets a secret word, the other tries to guess it."""

    kind = GameKind.WORD_GUESS

    def __init__(self, word_length=5, max_attempts=6):
        self.word_length = word_length
        self.max_attempts = max_attempts

    def normalize_word(self, word) -> str:
        if not isinstance(word, str):
            raise LocalValidationFailure('word must be text')
        word = word.strip().upper()
        if len(word) != self.word_length:
            raise LocalValidationFailure(f'Word must be {self.word_length} letters')
        if not (word.isascii() and word.isalpha()):
            raise LocalValidationFailure('Word must contain only letters')
        return word

    def phase(self, session) -> str:
        return session.state.get('phase') or SETTING

    def guesser(self, session):
        guesser = session.state.get('guesser')
        if guesser is None and session.state.get('setter') is not None:
            try:
                guesser = session.partner_of(session.state['setter'])
            except ValueError:
                return None
        return None if guesser is None else str(guesser)

    def validate_move(self, session, move, self_id):
        move_type = move.get('type')
        phase = self.phase(session)
        if move_type == 'setWord':
            if phase != SETTING:
                raise LocalValidationFailure('The secret word is already set')
            setter = session.state.get('setter')
            if setter is not None and str(setter) != self_id:
                raise LocalValidationFailure('Your partner is setting the word')
        elif move_type == 'guess':
            if phase != GUESSING:
                raise LocalValidationFailure('Wait for the secret word to be set')
            guesser = self.guesser(session)
            if guesser is not None and guesser != self_id:
                raise LocalValidationFailure('Only the guesser can guess')
            if len(session.state.get('guesses') or []) >= self.max_attempts:
                raise LocalValidationFailure('No attempts left')
        else:
            raise LocalValidationFailure(f'unknown word move type: {move_type!r}')
        return {'type': move_type, 'word': self.normalize_word(move.get('word'))}

    def parse_move(self, text, session):
        move_type = 'setWord' if self.phase(session) == SETTING else 'guess'
        return {'type': move_type, 'word': text}

    def describe_state(self, session, self_id):
        guesses = session.state.get('guesses') or []
        lines = [f'Phase: {self.phase(session)}  ({len(guesses)}/{self.max_attempts} guesses)']
        secret = session.state.get('secretWord')
        if secret:
            lines.append(f'Secret word: {secret}')
        for guess in guesses:
            word = guess.get('word', '')
            marks = ''.join(RESULT_MARKS.get(r, ' ') for r in guess.get('results') or [])
            lines.append(f'{word}  {marks}')
        if session.is_terminal:
            if session.is_draw:
                lines.append('Draw!')
            elif session.winner is not None:
                lines.append('You win!' if session.winner == self_id else 'You lost')
        elif session.current_turn == self_id:
            lines.append('Set a secret word' if self.phase(session) == SETTING else 'Your guess')
        elif session.current_turn is not None:
            lines.append("Partner's turn")
        return '\n'.join(lines)
