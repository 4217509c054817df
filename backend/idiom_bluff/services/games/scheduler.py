import logging
import threading
import time
from collections import namedtuple
from typing import Callable, Dict, Optional, Tuple


TimerKey = namedtuple('TimerKey', ['room_code', 'round_index', 'phase'])


class StageScheduler:
    """Deferred phase timers, at most one pending per room.

    - ``schedule`` replaces whatever timer the room had
    - ``cancel`` is best-effort: a worker already past its sleep may still
      fire, so callbacks must re-check the room before acting
    - Ensures a single timer per (room, round, phase)
    - Workers are started through ``start_task`` (``socketio.start_background_task``
      in the app) and sleep through ``sleep`` (``socketio.sleep``)
    """

    def __init__(self, start_task: Callable, sleep: Callable = time.sleep,
                 logger: Optional[logging.Logger] = None, enabled: bool = True,
                 heartbeat_sec: int = 0):
        self._start_task = start_task
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)
        self.enabled = enabled
        self.heartbeat_sec = heartbeat_sec
        self._pending: Dict[str, Tuple[TimerKey, object]] = {}
        self._lock = threading.Lock()

    def pending(self, room_code: str) -> Optional[TimerKey]:
        with self._lock:
            entry = self._pending.get(room_code)
        return entry[0] if entry else None

    def schedule(self, key: TimerKey, delay: float, callback: Callable[[TimerKey], None]) -> None:
        token = object()
        with self._lock:
            current = self._pending.get(key.room_code)
            if current and current[0] == key:
                self.logger.info(f"[timer-skip] room={key.room_code} phase={key.phase} round={key.round_index} already scheduled")
                return
            self._pending[key.room_code] = (key, token)
        self.logger.info(f"[timer-set] room={key.room_code} phase={key.phase} round={key.round_index} duration={delay}s")
        if not self.enabled:
            return
        self._start_task(self._worker, key, token, delay, callback)

    def cancel(self, room_code: str) -> None:
        with self._lock:
            entry = self._pending.pop(room_code, None)
        if entry:
            key = entry[0]
            self.logger.info(f"[timer-cancel] room={room_code} phase={key.phase} round={key.round_index}")

    def _worker(self, key: TimerKey, token: object, delay: float, callback: Callable[[TimerKey], None]) -> None:
        hb = self.heartbeat_sec
        if hb and hb > 0:
            slept = 0
            while slept < delay:
                step = min(hb, delay - slept)
                self._sleep(step)
                slept += step
                self.logger.info(f"[timer-heartbeat] room={key.room_code} phase={key.phase} round={key.round_index} remaining={max(0, delay - slept)}s")
        else:
            self._sleep(delay)

        with self._lock:
            current = self._pending.get(key.room_code)
            if current is None or current[1] is not token:
                self.logger.info(f"[timer-abort] room={key.room_code} phase={key.phase} round={key.round_index} cancelled or replaced")
                return
            del self._pending[key.room_code]

        self.logger.info(f"[timer-fire] room={key.room_code} phase={key.phase} round={key.round_index}")
        try:
            callback(key)
        except Exception:
            self.logger.exception(f"[timer-error] room={key.room_code} phase={key.phase} round={key.round_index}")
