import logging

from pairplay.api.games import GamesApi
from pairplay.config import Config
from pairplay.connection import ConnectionManager
from pairplay.controller import Phase, SessionController
from pairplay.store import SessionStore
from pairplay.timer import TurnTimer

logger = logging.getLogger('pairplay')


def configure_logging(config_class=Config) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s',
                                           datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, str(config_class.LOG_LEVEL).upper(), logging.INFO))


def create_client(kind, self_id, partner_id, config_class=Config, token=None,
                  client_factory=None, http=None, on_notice=None) -> SessionController:
    """Wire one game screen: API client, connection manager, store, timer and controller."""
    api = GamesApi.from_config(config_class, token=token, http=http)
    connections = ConnectionManager.from_config(config_class, client_factory=client_factory)
    return SessionController(
        kind,
        self_id,
        partner_id,
        api=api,
        connections=connections,
        store=SessionStore(),
        timer=TurnTimer(config_class.TURN_DURATION_SEC),
        config=config_class,
        on_notice=on_notice,
    )


__all__ = ['Config', 'Phase', 'SessionController', 'configure_logging', 'create_client']
