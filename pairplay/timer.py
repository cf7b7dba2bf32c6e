import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TurnTimer:
    """Local, purely informational turn countdown.

    The service enforces the real deadline and reports it with a `timeout`
    event; this timer never changes session status. A snapshot fetched over
    request/response resumes from its `turnStartedAt`; an inbound update that
    starts a new turn restarts it at the full duration.
    """

    def __init__(self, duration_sec: float = 600, clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], datetime] = _utcnow):
        self.duration = float(duration_sec)
        self._clock = clock
        self._wall_clock = wall_clock
        self._anchor: Optional[float] = None
        self.turn_started_at: Optional[datetime] = None
        self.last_remaining: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._anchor is not None

    def reset(self, turn_started_at: Optional[datetime] = None) -> None:
        self._anchor = self._clock()
        self.turn_started_at = turn_started_at
        self.last_remaining = self.duration
        logger.debug(f'[timer-reset] duration={self.duration:.0f}s turn_started_at={turn_started_at}')

    def resume(self, turn_started_at: Optional[datetime]) -> None:
        """Pick up a turn already in progress: remaining = duration - (now - turn_started_at)."""
        if turn_started_at is None:
            self.reset()
            return
        elapsed = (self._wall_clock() - turn_started_at).total_seconds()
        elapsed = min(self.duration, max(0.0, elapsed))
        self._anchor = self._clock() - elapsed
        self.turn_started_at = turn_started_at
        self.last_remaining = self.duration - elapsed
        logger.debug(f'[timer-resume] turn_started_at={turn_started_at} remaining={self.last_remaining:.0f}s')

    def stop(self) -> None:
        if self._anchor is not None:
            logger.debug(f'[timer-stop] remaining={self.last_remaining}')
        self._anchor = None

    def remaining(self) -> Optional[float]:
        if self._anchor is None:
            return None
        elapsed = self._clock() - self._anchor
        return min(self.duration, max(0.0, self.duration - elapsed))

    def tick(self) -> Optional[float]:
        """Recompute the countdown; called on a fixed local cadence by the owner."""
        remaining = self.remaining()
        if remaining is not None:
            self.last_remaining = remaining
        return remaining

    def format_remaining(self) -> str:
        remaining = self.remaining()
        if remaining is None:
            return '--:--'
        seconds = int(remaining + 0.999)
        return f'{seconds // 60}:{seconds % 60:02d}'
