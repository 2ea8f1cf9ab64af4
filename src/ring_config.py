from dataclasses import dataclass
from enum import Enum

from ring_errors import ConfigError

HASH_ALGORITHMS = ("md5", "sha1", "sha256", "crc32")


class CollisionPolicy(str, Enum):
    """What add_server does when a virtual node lands on an occupied position."""

    STOP = "stop"
    SKIP = "skip"
    ROLLBACK = "rollback"


@dataclass(frozen=True)
class RingConfig:
    """
    Immutable configuration defining the hash ring parameters.

    Frozen: a ring keeps its space and replica count for its whole life.

    Attributes:
        ring_size: Number of positions on the ring; positions run 1..ring_size.
        replica_count: Virtual nodes placed per server.
        server_capacity: Maximum number of active servers.
        hash_algorithm: Digest used to place labels (md5, sha1, sha256, crc32).
        collision_policy: Behaviour when a virtual node collides:
            stop   - skip the replica and stop placing further ones (server stays active)
            skip   - skip only the colliding replica
            rollback - undo the server's placements and reject it
    Derived attributes:
        max_positions: Upper bound on occupied positions.
    """

    ring_size: int = 360
    replica_count: int = 2
    server_capacity: int = 2
    hash_algorithm: str = "md5"
    collision_policy: CollisionPolicy = CollisionPolicy.STOP

    def __post_init__(self):
        for name in ("ring_size", "replica_count", "server_capacity"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")

        # frozen: normalised values are written through object.__setattr__
        object.__setattr__(self, "hash_algorithm", str(self.hash_algorithm).lower())
        if self.hash_algorithm not in HASH_ALGORITHMS:
            raise ConfigError(
                f"Unknown hash algorithm '{self.hash_algorithm}', expected one of {HASH_ALGORITHMS}"
            )

        try:
            object.__setattr__(
                self, "collision_policy", CollisionPolicy(self.collision_policy)
            )
        except ValueError:
            raise ConfigError(
                f"Unknown collision policy {self.collision_policy!r}, "
                f"expected one of {[p.value for p in CollisionPolicy]}"
            ) from None

    @property
    def max_positions(self) -> int:
        return self.server_capacity * self.replica_count
