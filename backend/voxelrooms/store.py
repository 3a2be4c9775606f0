import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .models import Room

logger = logging.getLogger(__name__)


class RoomStore:
    """Process-wide registry of rooms.

    Built once by the application factory and handed to the endpoints via
    ``app.extensions``. Rooms are created on first reference; the only way
    one disappears is :meth:`sweep_idle`.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._rooms)

    def room_ids(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def get(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Room:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = Room(room_id=room_id)
                self._rooms[room_id] = room
                logger.info(f"[room-create] room={room_id} rooms={len(self._rooms)}")
            return room

    @contextmanager
    def locked(self, room_id: str) -> Iterator[Room]:
        """Yield the live room for ``room_id`` with its lock held."""
        while True:
            room = self.get_or_create(room_id)
            room.lock.acquire()
            if not room.evicted:
                break
            # Swept between lookup and lock; the next lookup builds a new one
            room.lock.release()
        try:
            yield room
        finally:
            room.lock.release()

    def sweep_idle(self, max_idle: float, now: Optional[float] = None) -> List[str]:
        """Evict rooms with no subscribers that have been idle for ``max_idle`` seconds."""
        if now is None:
            now = time.monotonic()
        evicted = []
        with self._lock:
            for room_id, room in list(self._rooms.items()):
                # Skip rooms busy with a mutation; they are not idle anyway
                if not room.lock.acquire(blocking=False):
                    continue
                try:
                    if room.subscribers or now - room.last_active < max_idle:
                        continue
                    room.evicted = True
                    del self._rooms[room_id]
                    evicted.append(room_id)
                finally:
                    room.lock.release()
        for room_id in evicted:
            logger.info(f"[room-evict] room={room_id} idle>={max_idle}s")
        return evicted
