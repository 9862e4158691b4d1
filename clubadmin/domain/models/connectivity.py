"""Connectivity value objects."""

from dataclasses import dataclass
from enum import Enum


class ConnectionQuality(str, Enum):
    GOOD = "good"
    POOR = "poor"
    OFFLINE = "offline"


# Link classes reported by the platform that count as low bandwidth.
LOW_BANDWIDTH_LINKS = frozenset({"slow-2g", "2g"})


@dataclass(frozen=True)
class ConnectivityState:
    """Current connectivity as reported by the ConnectivityMonitor.

    quality is OFFLINE if and only if is_online is False.
    """
    is_online: bool
    quality: ConnectionQuality

    def __post_init__(self):
        if (self.quality is ConnectionQuality.OFFLINE) == self.is_online:
            raise ValueError(
                f"Inconsistent connectivity state: is_online={self.is_online}, quality={self.quality.value}"
            )

    @classmethod
    def online(cls, poor: bool = False) -> "ConnectivityState":
        return cls(True, ConnectionQuality.POOR if poor else ConnectionQuality.GOOD)

    @classmethod
    def offline(cls) -> "ConnectivityState":
        return cls(False, ConnectionQuality.OFFLINE)
