import os
import sys
from datetime import timedelta

import pytest
import requests

# Ensure the repository root (containing the `pairplay` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)
if CURRENT_DIR not in sys.path:
    sys.path.insert(0, CURRENT_DIR)

from pairplay.config import Config
from pairplay.connection import ConnectionManager
from pairplay.controller import SessionController
from pairplay.timer import TurnTimer

from fake_service import FakeGamesService, FlaskAdapter
from helpers import BASE_TIME, ME, PARTNER, FakeApi, FakeSocketClient


class TestConfig(Config):
    TESTING = True
    GAMES_API_URL = 'http://games.test'
    SOCKET_URL = 'http://games.test'
    AUTH_TOKEN = 'token-u-me'
    TURN_DURATION_SEC = 600
    WORD_LENGTH = 5
    MAX_ATTEMPTS = 6


class FakeClock:
    """Monotonic clock whose start lines up with BASE_TIME on the wall clock."""

    def __init__(self, now=1000.0):
        self.start = now
        self.now = now

    def __call__(self):
        return self.now

    def wall(self):
        return BASE_TIME + timedelta(seconds=self.now - self.start)

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def fake_socket():
    return FakeSocketClient()


@pytest.fixture()
def connections(fake_socket):
    return ConnectionManager('http://games.test', client_factory=lambda: fake_socket)


@pytest.fixture()
def api():
    return FakeApi()


@pytest.fixture()
def notices():
    return []


@pytest.fixture()
def make_controller(api, connections, clock, notices):
    def factory(kind='tic_tac_toe'):
        return SessionController(
            kind, ME, PARTNER,
            api=api,
            connections=connections,
            timer=TurnTimer(TestConfig.TURN_DURATION_SEC, clock=clock, wall_clock=clock.wall),
            config=TestConfig,
            on_notice=lambda level, message: notices.append((level, message)),
        )
    return factory


@pytest.fixture()
def service():
    return FakeGamesService()


@pytest.fixture()
def http(service):
    session = requests.Session()
    session.mount('http://games.test', FlaskAdapter(service.app))
    yield session
    session.close()


@pytest.fixture()
def config():
    return TestConfig
