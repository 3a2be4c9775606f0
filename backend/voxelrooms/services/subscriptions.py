import itertools
import json
import logging
import queue
from typing import Any, Dict, Optional

from voxelrooms.errors import ChannelClosed
from voxelrooms.models import Room

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ': keepalive\n\n'

_connection_ids = itertools.count(1)


def encode_frame(event: Dict[str, Any], retry_ms: Optional[int] = None) -> str:
    """Render one event as a text/event-stream frame."""
    data = json.dumps(event, separators=(',', ':'))
    if retry_ms:
        return f"retry: {int(retry_ms)}\ndata: {data}\n\n"
    return f"data: {data}\n\n"


def next_connection_id() -> str:
    return f"c{next(_connection_ids)}"


class Channel:
    """One subscriber's outbound frame queue.

    The stream endpoint drains it on the connection's thread; broadcasts only
    ever enqueue, so a room lock is never held across network I/O.
    """

    def __init__(self, connection_id: Optional[str] = None, maxsize: int = 256):
        self.connection_id = connection_id or next_connection_id()
        self._queue: 'queue.Queue[Optional[str]]' = queue.Queue(maxsize=maxsize)
        self.closed = False

    def __repr__(self):
        return f"<Channel {self.connection_id}{' closed' if self.closed else ''}>"

    def send(self, frame: str) -> None:
        if self.closed:
            raise ChannelClosed(f"channel {self.connection_id} is closed")
        try:
            self._queue.put_nowait(frame)
        except queue.Full:
            raise ChannelClosed(f"channel {self.connection_id} backlog is full") from None

    def receive(self, timeout: Optional[float] = None) -> Optional[str]:
        """Next queued frame, or None on timeout or close."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            # Wake a reader blocked in receive()
            self._queue.put_nowait(None)
        except queue.Full:
            # Reader is not blocked; it sees the closed flag after draining
            pass


class SubscriptionManager:
    """Attaches channels to rooms and fans events out to them.

    Callers hold ``room.lock`` around :meth:`broadcast` so that every channel
    sees a room's events in the order they were produced.
    """

    def attach(self, room: Room, channel: Channel) -> None:
        room.subscribers.add(channel)
        room.touch()
        logger.debug(f"[attach] room={room.room_id} channel={channel.connection_id} subscribers={len(room.subscribers)}")

    def detach(self, room: Room, channel: Channel) -> bool:
        if channel not in room.subscribers:
            return False
        room.subscribers.discard(channel)
        room.touch()
        logger.debug(f"[detach] room={room.room_id} channel={channel.connection_id} subscribers={len(room.subscribers)}")
        return True

    def broadcast(self, room: Room, event: Dict[str, Any]) -> int:
        """Write ``event`` to every attached channel; returns how many received it.

        A channel whose write fails is detached and closed. Delivery to the
        remaining channels carries on and nothing is raised to the caller.
        """
        frame = encode_frame(event)
        targets = list(room.subscribers)
        logger.debug(f"[broadcast] room={room.room_id} type={event.get('type')} subscribers={len(targets)} payload={frame[6:106]}")
        delivered = 0
        for channel in targets:
            try:
                channel.send(frame)
            except ChannelClosed as exc:
                logger.warning(f"[broadcast-drop] room={room.room_id} channel={channel.connection_id}: {exc}")
                self.detach(room, channel)
                channel.close()
                continue
            delivered += 1
        return delivered
