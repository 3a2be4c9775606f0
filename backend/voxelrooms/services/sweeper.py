import logging

from voxelrooms.store import RoomStore

logger = logging.getLogger(__name__)


def sweep_once(store: RoomStore, max_idle: float):
    evicted = store.sweep_idle(max_idle)
    if evicted:
        logger.info(f"[sweep] evicted={len(evicted)} remaining={len(store)}")
    return evicted


def schedule_room_sweeper(app, socketio, store: RoomStore) -> bool:
    """Start the background task that evicts idle rooms.

    - No-ops in TESTING mode unless ENABLE_SWEEPER_IN_TESTS is set
    - No-ops when ROOM_IDLE_EXPIRY_SEC is 0
    - Wakes every ROOM_SWEEP_INTERVAL_SEC, off the request path
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SWEEPER_IN_TESTS'):
        return False
    max_idle = int(app.config.get('ROOM_IDLE_EXPIRY_SEC', 600))
    interval = max(1, int(app.config.get('ROOM_SWEEP_INTERVAL_SEC', 60)))
    if max_idle <= 0:
        logger.info("[sweep-disabled] ROOM_IDLE_EXPIRY_SEC=0")
        return False

    def _worker():
        logger.info(f"[sweep-start] interval={interval}s max_idle={max_idle}s")
        while True:
            socketio.sleep(interval)
            try:
                sweep_once(store, max_idle)
            except Exception:
                # Keep the sweeper alive; the next pass retries
                logger.exception("[sweep-error]")

    socketio.start_background_task(_worker)
    return True
