import hashlib
import logging
import threading
import zlib
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from sortedcontainers import SortedDict

from ring_config import CollisionPolicy, RingConfig
from ring_errors import NoAvailableNodesError
from ring_events import (
    KeyResolved,
    PlacementResult,
    PlacementStatus,
    ServerRejected,
    VirtualNodeCollision,
    VirtualNodePlaced,
    VirtualNodeRemoved,
)
from ring_logger import Logger


def h32(value: bytes) -> int:
    """Computes a 32-bit hash using CRC32."""
    return zlib.crc32(value) & 0xFFFFFFFF


def _digest_int(algorithm):
    """Wraps a hashlib constructor so the digest is read as an unsigned big-endian integer."""

    def hash_bytes(value: bytes) -> int:
        return int.from_bytes(algorithm(value).digest(), "big")

    return hash_bytes


HASH_FUNCTIONS: Dict[str, Callable[[bytes], int]] = {
    "md5": _digest_int(hashlib.md5),
    "sha1": _digest_int(hashlib.sha1),
    "sha256": _digest_int(hashlib.sha256),
    "crc32": h32,
}


def virtual_node_label(server: str, replica: int) -> str:
    return f"{server}:{replica}"


def server_of(label: str) -> str:
    """Strips the trailing ':<replica>' from a virtual node label."""
    return label.rsplit(":", 1)[0]


@dataclass(frozen=True)
class _RingState:
    # published as a whole; never mutated after assignment to HashRing._state
    servers: FrozenSet[str]
    index: SortedDict
    placements: Dict[str, Tuple[int, ...]]


class HashRing:
    """
    Consistent hash ring with virtual nodes.

    Servers and keys are hashed onto positions 1..ring_size. A key belongs to
    the first occupied position clockwise from its own, wrapping to the
    smallest occupied position.

    Writers serialize on a lock and publish a fresh state object; readers use
    whichever state is current when they start, without locking.
    """

    def __init__(
        self,
        cfg: Optional[RingConfig] = None,
        logger=None,
        hash_fn: Optional[Callable[[bytes], int]] = None,
    ):
        self._cfg = cfg or RingConfig()
        # hash_fn overrides cfg.hash_algorithm; it must map bytes to a non-negative int
        self._hash = hash_fn or HASH_FUNCTIONS[self.cfg.hash_algorithm]
        self.logger = logger or Logger.get_logger("hash_ring")
        self._lock = threading.Lock()
        self._listeners = []
        self._state = _RingState(frozenset(), SortedDict(), {})
        self.collision_count = 0
        self.rejected_count = 0

    @property
    def cfg(self) -> RingConfig:
        return self._cfg

    def position(self, label: str) -> int:
        """Returns the ring position of a label, in 1..ring_size."""
        return self._hash(label.encode("utf-8")) % self.cfg.ring_size + 1

    def subscribe(self, listener: Callable[[object], None]):
        """Registers a callable that receives every event produced by add/remove."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[object], None]):
        self._listeners.remove(listener)

    def add_server(self, server: str) -> PlacementResult:
        """
        Places the virtual nodes of a server on the ring.

        Duplicate servers and servers beyond capacity are rejected without
        touching the ring. Collisions are handled per cfg.collision_policy.
        """
        with self._lock:
            state = self._state
            if server in state.servers:
                result = PlacementResult(server, PlacementStatus.DUPLICATE)
                events = [self._reject(server, f"Server already exists: {server}")]
            elif len(state.servers) >= self.cfg.server_capacity:
                result = PlacementResult(server, PlacementStatus.CAPACITY_REACHED)
                events = [
                    self._reject(
                        server,
                        f"Cannot add {server}: max limit of {self.cfg.server_capacity} servers reached",
                    )
                ]
            else:
                result, events = self._place(state, server)

        self._notify(events)
        return result

    def _place(self, state: _RingState, server: str):
        policy = self.cfg.collision_policy
        index = state.index.copy()
        result = PlacementResult(server, PlacementStatus.ADDED)
        events = []

        for replica in range(1, self.cfg.replica_count + 1):
            label = virtual_node_label(server, replica)
            pos = self.position(label)
            if pos in index:
                collision = VirtualNodeCollision(server, label, pos, index[pos])
                result.collisions.append(collision)
                events.append(collision)
                self.collision_count += 1
                self.logger.warning(
                    f"Collision detected for virtual node: {label} at position: {pos} "
                    f"(held by {index[pos]})"
                )
                if policy is CollisionPolicy.SKIP:
                    continue
                break
            index[pos] = label
            result.placed.append((pos, label))
            events.append(VirtualNodePlaced(server, label, pos))

        if result.collisions and policy is CollisionPolicy.ROLLBACK:
            self.logger.warning(
                f"Rolled back {len(result.placed)} virtual node(s) of {server} after collision"
            )
            result.status = PlacementStatus.ROLLED_BACK
            result.placed = []
            result.skipped = self.cfg.replica_count
            return result, list(result.collisions)

        result.skipped = self.cfg.replica_count - len(result.placed)
        if result.skipped:
            result.status = PlacementStatus.PARTIAL

        placements = dict(state.placements)
        placements[server] = tuple(pos for pos, _ in result.placed)
        self._state = _RingState(state.servers | {server}, index, placements)

        for pos, label in result.placed:
            self.logger.info(f"Added virtual node: {label} at position: {pos}")
        if result.skipped:
            self.logger.warning(
                f"Server {server} partially placed: {len(result.placed)}/"
                f"{self.cfg.replica_count} virtual nodes"
            )
        return result, events

    def remove_server(self, server: str) -> List[VirtualNodeRemoved]:
        """
        Removes a server and vacates the positions of all its virtual nodes.

        Removal is positional: each replica's position is cleared whatever it
        holds, so a position taken by another server after a collision is
        evicted as well.
        """
        with self._lock:
            state = self._state
            if server not in state.servers:
                events = [self._reject(server, f"Server does not exist: {server}")]
                removed = []
            else:
                index = state.index.copy()
                placements = dict(state.placements)
                del placements[server]
                removed = []

                for replica in range(1, self.cfg.replica_count + 1):
                    label = virtual_node_label(server, replica)
                    pos = self.position(label)
                    occupant = index.pop(pos, None)
                    owner = server_of(occupant) if occupant is not None else None
                    evicted = owner is not None and owner != server
                    if evicted:
                        placements[owner] = tuple(p for p in placements[owner] if p != pos)
                        self.logger.warning(
                            f"Removing {label} evicted {occupant} from position: {pos}"
                        )
                    else:
                        self.logger.info(f"Removed virtual node: {label} from position: {pos}")
                    removed.append(VirtualNodeRemoved(server, label, pos, occupant, evicted))

                self._state = _RingState(state.servers - {server}, index, placements)
                events = removed

        self._notify(events)
        return removed

    def _reject(self, server: str, reason: str) -> ServerRejected:
        self.rejected_count += 1
        self.logger.warning(reason)
        return ServerRejected(server, reason)

    def _notify(self, events):
        for listener in list(self._listeners):
            for event in events:
                listener(event)

    def locate(self, key: str) -> KeyResolved:
        """Resolves a key to the first occupied position clockwise from it."""
        index = self._state.index
        key_pos = self.position(key)
        if not index:
            raise NoAvailableNodesError(key)

        i = index.bisect_left(key_pos)
        if i == len(index):
            i = 0
        node_pos, label = index.peekitem(i)
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                "Key: %s (pos: %s) is mapped to node position: %s", key, key_pos, node_pos
            )
        return KeyResolved(key, key_pos, node_pos, label)

    def get_server_for_key(self, key: str) -> str:
        """Returns the virtual node label (e.g. 'Server1:2') that owns the key."""
        return self.locate(key).label

    def get_owner_for_key(self, key: str) -> str:
        """Returns the bare server id that owns the key."""
        return server_of(self.locate(key).label)

    @property
    def servers(self) -> FrozenSet[str]:
        return self._state.servers

    def positions(self) -> List[Tuple[int, str]]:
        """Occupied (position, label) pairs in ascending order."""
        return list(self._state.index.items())

    def placements(self, server: str) -> Tuple[int, ...]:
        return self._state.placements.get(server, ())

    def is_fully_placed(self, server: str) -> bool:
        return len(self.placements(server)) == self.cfg.replica_count

    def stats(self) -> dict:
        state = self._state
        return {
            "ring_size": self.cfg.ring_size,
            "servers": len(state.servers),
            "occupied_positions": len(state.index),
            "collisions": self.collision_count,
            "rejected": self.rejected_count,
            "missing_replicas": {
                server: self.cfg.replica_count - len(positions)
                for server, positions in state.placements.items()
                if len(positions) < self.cfg.replica_count
            },
        }

    def __len__(self):
        return len(self._state.index)

    def __contains__(self, server):
        return server in self._state.servers
