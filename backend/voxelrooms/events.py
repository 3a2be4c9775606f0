"""Event payloads pushed to room subscribers.

Every event is a JSON object whose ``type`` tells the client how to apply it:
``init``, ``add``, ``remove``, ``clear``, ``player_joined``, ``player_left``
and ``player_moved``.
"""
from typing import Optional

from .models import Block, Room


def init_event(room: Room):
    return {'type': 'init', **room.snapshot()}


def add_event(block: Block, sender: Optional[str]):
    return {'type': 'add', 'block': block.to_dict(), 'sender': sender}


def remove_event(block_id: str, sender: Optional[str]):
    return {'type': 'remove', 'blockId': block_id, 'sender': sender}


def clear_event():
    return {'type': 'clear'}


def player_joined_event(name: str, player_count: int):
    return {'type': 'player_joined', 'name': name, 'playerCount': player_count}


def player_left_event(name: str, player_count: int):
    return {'type': 'player_left', 'name': name, 'playerCount': player_count}


def player_moved_event(name: str, x, y, z):
    return {'type': 'player_moved', 'name': name, 'position': {'x': x, 'y': y, 'z': z}}
