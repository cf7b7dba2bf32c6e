"""Socket.IO connection owned by one game screen.

Outbound intents (`join`, `move`, `forfeit`) are emitted fire-and-forget on
the game namespace. Inbound protocol events are never interpreted here: they
are funnelled through a single dispatch point into a FIFO inbox that the
owning controller drains on its own thread.
"""

import logging
import queue
from typing import Callable, List, Optional, Set

import socketio
from socketio import exceptions as sio_exceptions

from pairplay.errors import AuthFailure, TransportFailure
from pairplay.models import INBOUND_EVENTS, InboundEvent, Intent

logger = logging.getLogger(__name__)

_AUTH_MARKERS = ('unauthorized', 'unauthorised', 'forbidden', 'auth', 'token', '401', '403')


def _default_client_factory():
    # The service is the only party that can supply a fresh snapshot, so
    # reconnecting is left to the controller's explicit refresh path.
    return socketio.Client(reconnection=False, logger=False, engineio_logger=False)


def _is_auth_rejection(data, exc) -> bool:
    texts = [str(exc)]
    if isinstance(data, dict):
        texts.append(str(data.get('message', '')))
    elif data is not None:
        texts.append(str(data))
    return any(marker in text.lower() for text in texts for marker in _AUTH_MARKERS)


class ConnectionHandle:
    def __init__(self, client, namespace: str = '/ws'):
        self._client = client
        self.namespace = namespace
        self._inbox: 'queue.Queue[InboundEvent]' = queue.Queue()
        self._joined: Set[str] = set()
        self._closed = False
        self.connect_error = None
        self._register()

    def _register(self) -> None:
        for name in INBOUND_EVENTS:
            self._client.on(name, self._handler_for(name), namespace=self.namespace)
        self._client.on('connect_error', self._on_connect_error, namespace=self.namespace)
        self._client.on('disconnect', self._on_disconnect, namespace=self.namespace)

    def _handler_for(self, name: str) -> Callable:
        def handler(data=None, *_):
            self._dispatch(name, data)
        return handler

    def _dispatch(self, name: str, data) -> None:
        """Single entry point for everything the service sends us."""
        if self._closed:
            return
        if isinstance(data, dict):
            payload = data
        elif data is None:
            payload = {}
        else:
            payload = {'message': str(data)}
        self._inbox.put(InboundEvent(name, payload))

    def _on_connect_error(self, data=None, *_):
        self.connect_error = data

    def _on_disconnect(self, *args):
        if self._closed:
            return
        reason = args[0] if args else None
        logger.warning(f'[disconnect] namespace={self.namespace} reason={reason}')
        self._dispatch('disconnect', {'reason': str(reason) if reason is not None else None})

    @property
    def connected(self) -> bool:
        return not self._closed and bool(getattr(self._client, 'connected', False))

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def joined(self) -> Set[str]:
        return set(self._joined)

    def join_session(self, session_id: str) -> None:
        if session_id in self._joined:
            return
        self.send(Intent.join(session_id))
        self._joined.add(session_id)
        logger.info(f'[join] session={session_id}')

    def send(self, intent: Intent) -> None:
        if not self.connected:
            raise TransportFailure(f'cannot send {intent.name}: connection is not open')
        try:
            self._client.emit(intent.name, intent.payload, namespace=self.namespace)
        except sio_exceptions.SocketIOError as exc:
            raise TransportFailure(f'cannot send {intent.name}: {exc}') from exc
        logger.debug(f'[emit] event={intent.name} payload={intent.payload}')

    def poll(self) -> List[InboundEvent]:
        """Drain queued inbound events in delivery order."""
        events = []
        while not self._closed:
            try:
                events.append(self._inbox.get_nowait())
            except queue.Empty:
                break
        return events

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._client.disconnect()
        except Exception as exc:
            logger.warning(f'[close] disconnect raised: {exc}')
        # Nothing queued before teardown may be delivered afterwards
        while True:
            try:
                self._inbox.get_nowait()
            except queue.Empty:
                break
        logger.info(f'[close] namespace={self.namespace} joined={sorted(self._joined)}')


class ConnectionManager:
    """Opens authenticated connections; one handle per active screen."""

    def __init__(self, url: str, namespace: str = '/ws', socketio_path: str = 'socket.io',
                 wait_timeout: float = 10, client_factory: Optional[Callable] = None):
        self.url = url
        self.namespace = namespace
        self.socketio_path = socketio_path
        self.wait_timeout = wait_timeout
        self._client_factory = client_factory or _default_client_factory

    @classmethod
    def from_config(cls, config, client_factory=None) -> 'ConnectionManager':
        return cls(
            config.SOCKET_URL,
            namespace=config.SOCKET_NAMESPACE,
            socketio_path=config.SOCKET_PATH,
            wait_timeout=config.CONNECT_TIMEOUT_SEC,
            client_factory=client_factory,
        )

    def connect(self, credential: Optional[str]) -> ConnectionHandle:
        if credential is None or not str(credential).strip():
            raise AuthFailure('No credential available; sign in again')
        client = self._client_factory()
        handle = ConnectionHandle(client, self.namespace)
        try:
            client.connect(
                self.url,
                headers={'Authorization': f'Bearer {credential}'},
                auth={'token': credential},
                namespaces=[self.namespace],
                socketio_path=self.socketio_path,
                wait_timeout=self.wait_timeout,
            )
        except sio_exceptions.ConnectionError as exc:
            handle.close()
            if _is_auth_rejection(handle.connect_error, exc):
                logger.warning(f'[connect-refused] url={self.url} detail={handle.connect_error}')
                raise AuthFailure('The game service rejected your credential') from exc
            logger.warning(f'[connect-failed] url={self.url} error={exc}')
            raise TransportFailure(f'Could not reach the game service: {exc}') from exc
        if not handle.connected:
            handle.close()
            raise TransportFailure('Connection closed during handshake')
        logger.info(f'[connect] url={self.url} namespace={self.namespace}')
        return handle
