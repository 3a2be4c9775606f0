import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from voxelrooms import events
from voxelrooms.errors import InvalidAction, MalformedPayload
from voxelrooms.models import Block, Room
from voxelrooms.store import RoomStore
from .subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)

ACTIONS = ('add', 'remove', 'clear', 'update_position')
# Block coordinates must fit a signed 32-bit grid
GRID_LIMIT = 2 ** 31


@dataclass
class Action:
    kind: str
    sender: Optional[str] = None
    block: Optional[Block] = None
    block_id: Optional[str] = None
    position: Optional[Dict[str, float]] = None


def _number(value: Any, field_name: str) -> float:
    # bool is an int subclass but never a coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedPayload(f'{field_name} must be a number')
    try:
        finite = math.isfinite(value)
    except OverflowError:
        # JSON integers too large for a float
        finite = False
    if not finite:
        raise MalformedPayload(f'{field_name} must be a finite number')
    return value


def _grid(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedPayload(f'{field_name} must be an integer')
    if isinstance(value, float):
        if not value.is_integer():
            raise MalformedPayload(f'{field_name} must be an integer')
        value = int(value)
    if not -GRID_LIMIT <= value < GRID_LIMIT:
        raise MalformedPayload(f'{field_name} is out of range')
    return value


def _optional_str(value: Any, field_name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedPayload(f'{field_name} must be a string')
    return value


def _coordinates(data: Any, prefix: str, parse=_number) -> Dict[str, float]:
    if not isinstance(data, dict):
        raise MalformedPayload(f'{prefix} is required')
    coords = {}
    for axis in ('x', 'y', 'z'):
        if axis not in data:
            raise MalformedPayload(f'{prefix}.{axis} is required')
        coords[axis] = parse(data[axis], f'{prefix}.{axis}')
    return coords


def parse_block(data: Any) -> Block:
    if not isinstance(data, dict):
        raise MalformedPayload('block is required')
    block_id = data.get('id')
    if not isinstance(block_id, str) or not block_id:
        raise MalformedPayload('block.id must be a non-empty string')
    coords = _coordinates(data, 'block', parse=_grid)
    return Block(
        id=block_id,
        block_type=_optional_str(data.get('blockType'), 'block.blockType'),
        color=_optional_str(data.get('color'), 'block.color'),
        **coords,
    )


def parse_action(payload: Any) -> Action:
    """Validate a submitted JSON body and turn it into an :class:`Action`.

    Raises MalformedPayload for bodies with missing or ill-typed fields and
    InvalidAction for unknown action tags.
    """
    if not isinstance(payload, dict):
        raise MalformedPayload('request body must be a JSON object')
    kind = payload.get('action')
    if not isinstance(kind, str) or not kind:
        raise MalformedPayload('action is required')
    if kind not in ACTIONS:
        raise InvalidAction('Invalid action')
    sender = _optional_str(payload.get('sender'), 'sender')

    if kind == 'add':
        return Action(kind, sender=sender, block=parse_block(payload.get('block')))
    if kind == 'remove':
        block_id = payload.get('blockId')
        if not isinstance(block_id, str) or not block_id:
            raise MalformedPayload('blockId must be a non-empty string')
        return Action(kind, sender=sender, block_id=block_id)
    if kind == 'update_position':
        if not sender:
            raise MalformedPayload('sender is required for update_position')
        return Action(kind, sender=sender, position=_coordinates(payload.get('position'), 'position'))
    return Action(kind, sender=sender)


class MutationHandler:
    """Single writer of room state.

    :meth:`apply` expects the caller to hold ``room.lock``; :meth:`submit`
    takes care of that for callers starting from a room id.
    """

    def __init__(self, store: RoomStore, subscriptions: SubscriptionManager):
        self.store = store
        self.subscriptions = subscriptions

    def submit(self, room_id: str, action: Action) -> Optional[Dict[str, Any]]:
        with self.store.locked(room_id) as room:
            return self.apply(room, action)

    def apply(self, room: Room, action: Action) -> Optional[Dict[str, Any]]:
        """Mutate ``room`` and broadcast the resulting event.

        Returns the broadcast event, or None when the action changed nothing
        worth announcing (a position update for an unknown player).
        """
        room.touch()
        if action.kind == 'add':
            room.put_block(action.block)
            logger.info(
                f"[block-add] room={room.room_id} id={action.block.id} "
                f"at=({action.block.x}, {action.block.y}, {action.block.z}) sender={action.sender} total={len(room.blocks)}"
            )
            event = events.add_event(action.block, action.sender)
        elif action.kind == 'remove':
            before = len(room.blocks)
            room.remove_block(action.block_id)
            logger.info(
                f"[block-remove] room={room.room_id} id={action.block_id} sender={action.sender} "
                f"before={before} after={len(room.blocks)}"
            )
            event = events.remove_event(action.block_id, action.sender)
        elif action.kind == 'clear':
            cleared = len(room.blocks)
            room.clear_blocks()
            logger.info(f"[block-clear] room={room.room_id} sender={action.sender} cleared={cleared}")
            event = events.clear_event()
        elif action.kind == 'update_position':
            player = room.players.get(action.sender)
            if player is None:
                # Usually a move racing the stream join; nothing to announce
                logger.debug(f"[move-skip] room={room.room_id} name={action.sender} unknown player")
                return None
            pos = action.position
            player.move_to(pos['x'], pos['y'], pos['z'])
            event = events.player_moved_event(player.name, pos['x'], pos['y'], pos['z'])
        else:
            raise InvalidAction('Invalid action')

        self.subscriptions.broadcast(room, event)
        return event
