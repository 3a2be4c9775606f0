import logging
import threading
from typing import Iterator, Optional

from voxelrooms import events
from voxelrooms.models import Player
from voxelrooms.store import RoomStore
from .subscriptions import KEEPALIVE_FRAME, Channel, SubscriptionManager, encode_frame

logger = logging.getLogger(__name__)

CONNECTING = 'connecting'
SUBSCRIBED = 'subscribed'
CLOSED = 'closed'


class StreamSession:
    """Lifecycle of one event-stream connection to a room.

    ``connecting -> subscribed -> closed``. :meth:`close` may be called from
    the streaming generator and from the response close hook at the same
    time; cleanup runs once.
    """

    def __init__(
        self,
        store: RoomStore,
        subscriptions: SubscriptionManager,
        room_id: str,
        name: Optional[str] = None,
        queue_size: int = 256,
        retry_ms: Optional[int] = None,
    ):
        self.store = store
        self.subscriptions = subscriptions
        self.room_id = room_id
        self.name = name or None
        self.retry_ms = retry_ms
        self.channel = Channel(maxsize=queue_size)
        self.owns_player = False
        self.state = CONNECTING
        self._state_lock = threading.Lock()

    @property
    def connection_id(self) -> str:
        return self.channel.connection_id

    def open(self) -> 'StreamSession':
        with self.store.locked(self.room_id) as room:
            if self.name and self.name not in room.players:
                room.players[self.name] = Player(name=self.name, connection_id=self.connection_id)
                self.owns_player = True
                # The new channel is not attached yet, so this reaches existing subscribers only
                self.subscriptions.broadcast(room, events.player_joined_event(self.name, len(room.players)))
            elif self.name:
                logger.warning(
                    f"[room-join-dup] room={self.room_id} name={self.name} connection={self.connection_id} "
                    f"already registered by {room.players[self.name].connection_id}"
                )
            # Snapshot goes first on this channel only, then later broadcasts follow it
            self.channel.send(encode_frame(events.init_event(room), retry_ms=self.retry_ms))
            self.subscriptions.attach(room, self.channel)
            with self._state_lock:
                self.state = SUBSCRIBED
            logger.info(
                f"[room-join] room={self.room_id} name={self.name} connection={self.connection_id} "
                f"blocks={len(room.blocks)} players={len(room.players)} subscribers={len(room.subscribers)}"
            )
        return self

    def close(self) -> bool:
        """Tear the subscription down. Returns False if it was already closed."""
        with self._state_lock:
            if self.state == CLOSED:
                return False
            self.state = CLOSED
        self.channel.close()
        room = self.store.get(self.room_id)
        if room is None:
            return True
        with room.lock:
            self.subscriptions.detach(room, self.channel)
            if self.owns_player:
                player = room.players.get(self.name)
                if player is not None and player.connection_id == self.connection_id:
                    del room.players[self.name]
                    self.subscriptions.broadcast(room, events.player_left_event(self.name, len(room.players)))
            logger.info(
                f"[room-leave] room={self.room_id} name={self.name} connection={self.connection_id} "
                f"players={len(room.players)} subscribers={len(room.subscribers)}"
            )
        return True

    def frames(self, keepalive: Optional[float] = None) -> Iterator[str]:
        """Yield frames until the channel closes, with keepalive comments while idle."""
        try:
            while True:
                if self.channel.closed and not self.channel.pending():
                    break
                frame = self.channel.receive(timeout=keepalive)
                if frame is None:
                    if self.channel.closed:
                        break
                    yield KEEPALIVE_FRAME
                    continue
                yield frame
        finally:
            self.close()
