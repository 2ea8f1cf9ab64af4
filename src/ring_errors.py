class RingError(Exception):
    """Base class for hash ring failures."""


class ConfigError(RingError, ValueError):
    """Raised when a ring configuration value is out of range or unknown."""


class NoAvailableNodesError(RingError, LookupError):
    """Raised when a key is resolved against a ring with no occupied positions."""

    def __init__(self, key: str):
        super().__init__(f"No available nodes to serve key '{key}'")
        self.key = key
