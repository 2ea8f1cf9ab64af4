from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import List, Optional, Tuple
import time


class PlacementStatus(str, Enum):
    ADDED = "added"
    PARTIAL = "partial"
    ROLLED_BACK = "rolled_back"
    DUPLICATE = "duplicate"
    CAPACITY_REACHED = "capacity_reached"


@dataclass
class VirtualNodePlaced:
    """A virtual node was inserted at a free ring position."""

    server: str
    label: str
    position: int
    ts: float = field(default_factory=time.time)

    def to_fields(self):
        return {k: str(v) for k, v in asdict(self).items()}


@dataclass
class VirtualNodeCollision:
    """A virtual node hashed onto a position already held by `occupant`."""

    server: str
    label: str
    position: int
    occupant: str
    ts: float = field(default_factory=time.time)

    def to_fields(self):
        return {k: str(v) for k, v in asdict(self).items()}


@dataclass
class VirtualNodeRemoved:
    """
    A ring position was vacated while removing `server`.

    `removed` is the label that actually sat at the position, None if the
    position was empty. `evicted` is set when that label belonged to another
    server.
    """

    server: str
    label: str
    position: int
    removed: Optional[str] = None
    evicted: bool = False
    ts: float = field(default_factory=time.time)

    def to_fields(self):
        return {k: str(v) for k, v in asdict(self).items()}


@dataclass
class ServerRejected:
    """An add or remove request was refused without touching the ring."""

    server: str
    reason: str
    ts: float = field(default_factory=time.time)

    def to_fields(self):
        return {k: str(v) for k, v in asdict(self).items()}


@dataclass
class KeyResolved:
    """A key was mapped to the virtual node at `node_position`."""

    key: str
    key_position: int
    node_position: int
    label: str
    ts: float = field(default_factory=time.time)

    @property
    def wrapped(self) -> bool:
        return self.node_position < self.key_position

    def to_fields(self):
        return {k: str(v) for k, v in asdict(self).items()}


@dataclass
class PlacementResult:
    """Outcome of HashRing.add_server."""

    server: str
    status: PlacementStatus
    placed: List[Tuple[int, str]] = field(default_factory=list)
    collisions: List[VirtualNodeCollision] = field(default_factory=list)
    skipped: int = 0

    @property
    def accepted(self) -> bool:
        return self.status in (PlacementStatus.ADDED, PlacementStatus.PARTIAL)
