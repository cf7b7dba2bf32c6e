import logging
from typing import List, Optional

import requests

from pairplay.errors import ApiError, AuthFailure, TransportFailure
from pairplay.models import GameInfo, GameKind, GameStats, HistoryPage, Session, parse_kind

logger = logging.getLogger(__name__)


class GamesApi:
    """Request/response client for the games service.

    Every endpoint answers with a `{"success": ..., "data": {...}}` envelope
    and is authenticated with the same bearer token as the socket.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 15,
                 http: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.http = http or requests.Session()

    @classmethod
    def from_config(cls, config, token=None, http=None) -> 'GamesApi':
        return cls(config.GAMES_API_URL, token=token or config.AUTH_TOKEN,
                   timeout=config.REQUEST_TIMEOUT_SEC, http=http)

    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = kwargs.pop('headers', {})
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        url = f'{self.base_url}{path}'
        try:
            res = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.warning(f'[api-unreachable] {method} {path} error={exc}')
            raise TransportFailure(f'{method} {path} failed: {exc}') from exc

        if res.status_code in (401, 403):
            raise AuthFailure(f'{method} {path} was not authorized')
        try:
            body = res.json()
        except ValueError:
            body = None
        if not res.ok or not isinstance(body, dict) or body.get('success') is False:
            message = None
            if isinstance(body, dict):
                message = body.get('message') or body.get('error')
            logger.warning(f'[api-error] {method} {path} status={res.status_code} message={message}')
            raise ApiError(message or f'{method} {path} failed with HTTP {res.status_code}', res.status_code)
        return body.get('data') or {}

    def list_games(self) -> List[GameInfo]:
        data = self._request('GET', '/games/list')
        return [GameInfo.from_dict(g) for g in data.get('games') or []]

    def create_game(self, kind, partner_id: str) -> Session:
        kind = parse_kind(kind)
        data = self._request('POST', '/games/create', json={'gameType': kind.value, 'partnerId': partner_id})
        if not data.get('game'):
            raise ApiError('create returned no game')
        session = Session.from_dict(data['game'])
        logger.info(f'[create] session={session.id} kind={kind.value} partner={partner_id}')
        return session

    def get_active_game(self, kind: Optional[GameKind] = None) -> Optional[Session]:
        params = {'gameType': parse_kind(kind).value} if kind is not None else None
        data = self._request('GET', '/games/active', params=params)
        if not data.get('game'):
            return None
        session = Session.from_dict(data['game'])
        # The service may ignore the filter and return whichever game is open
        if kind is not None and session.game_kind != parse_kind(kind):
            return None
        return session

    def get_history(self, page: int = 1, limit: int = 20) -> HistoryPage:
        data = self._request('GET', '/games/history', params={'page': page, 'limit': limit})
        return HistoryPage.from_dict(data)

    def get_stats(self) -> GameStats:
        data = self._request('GET', '/games/stats')
        return GameStats.from_dict(data.get('stats') or {})
