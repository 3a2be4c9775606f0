import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set


@dataclass
class Block:
    id: str
    x: int
    y: int
    z: int
    block_type: Optional[str] = None
    # Only meaningful when block_type is absent
    color: Optional[str] = None

    def to_dict(self):
        data = {
            'id': self.id,
            'x': self.x,
            'y': self.y,
            'z': self.z,
        }
        if self.block_type is not None:
            data['blockType'] = self.block_type
        if self.color is not None:
            data['color'] = self.color
        return data


@dataclass
class Player:
    name: str
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    # Connection id of the stream that registered this player
    connection_id: Optional[str] = None

    def move_to(self, x, y, z) -> None:
        self.x, self.y, self.z = x, y, z

    def to_dict(self):
        return {
            'name': self.name,
            'x': self.x,
            'y': self.y,
            'z': self.z,
        }


@dataclass(eq=False)
class Room:
    room_id: str
    blocks: List[Block] = field(default_factory=list)
    players: Dict[str, Player] = field(default_factory=dict)
    subscribers: Set[object] = field(default_factory=set)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    last_active: float = field(default_factory=time.monotonic)
    evicted: bool = False

    def touch(self) -> None:
        self.last_active = time.monotonic()

    def put_block(self, block: Block) -> None:
        """Append a block, replacing any block that already uses its id."""
        for idx, existing in enumerate(self.blocks):
            if existing.id == block.id:
                self.blocks[idx] = block
                return
        self.blocks.append(block)

    def remove_block(self, block_id: str) -> bool:
        before = len(self.blocks)
        self.blocks = [b for b in self.blocks if b.id != block_id]
        return len(self.blocks) != before

    def clear_blocks(self) -> None:
        self.blocks = []

    def snapshot(self):
        return {
            'blocks': [b.to_dict() for b in self.blocks],
            'players': [p.to_dict() for p in self.players.values()],
        }
