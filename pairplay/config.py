import os


class Config:
    GAMES_API_URL = os.environ.get('PAIRPLAY_GAMES_API_URL') or 'https://games.distang.com'
    SOCKET_URL = os.environ.get('PAIRPLAY_SOCKET_URL') or GAMES_API_URL
    SOCKET_NAMESPACE = os.environ.get('PAIRPLAY_SOCKET_NAMESPACE', '/ws')
    SOCKET_PATH = os.environ.get('PAIRPLAY_SOCKET_PATH', 'socket.io')
    # Credential handed in by whatever owns the login flow
    AUTH_TOKEN = os.environ.get('PAIRPLAY_AUTH_TOKEN')
    # Network timeouts (seconds)
    CONNECT_TIMEOUT_SEC = int(os.environ.get('PAIRPLAY_CONNECT_TIMEOUT_SEC', '10'))
    REQUEST_TIMEOUT_SEC = int(os.environ.get('PAIRPLAY_REQUEST_TIMEOUT_SEC', '15'))
    # Turn clock shown locally; the service enforces the real deadline
    TURN_DURATION_SEC = int(os.environ.get('PAIRPLAY_TURN_DURATION_SEC', '600'))
    TICK_INTERVAL_SEC = float(os.environ.get('PAIRPLAY_TICK_INTERVAL_SEC', '1'))
    # Word guess shape
    WORD_LENGTH = int(os.environ.get('PAIRPLAY_WORD_LENGTH', '5'))
    MAX_ATTEMPTS = int(os.environ.get('PAIRPLAY_MAX_ATTEMPTS', '6'))
    LOG_LEVEL = os.environ.get('PAIRPLAY_LOG_LEVEL', 'INFO')
