from __future__ import annotations

from dataclasses import dataclass

SUBNET_MASK = "255.255.255.0"


@dataclass(frozen=True)
class RouterInfo:
    address: str
    subnet_mask: str = SUBNET_MASK


@dataclass(frozen=True)
class Link:
    """Undirected weighted connection between two router addresses."""

    x: str
    y: str
    weight: int

    def __post_init__(self) -> None:
        if self.x == self.y:
            raise ValueError(f"Link endpoints must differ: {self.x}")
        if int(self.weight) <= 0:
            raise ValueError(f"Link weight must be positive: {self.weight}")
        object.__setattr__(self, "weight", int(self.weight))

    @property
    def endpoints(self) -> tuple[str, str]:
        return (self.x, self.y)

    def touches(self, address: str) -> bool:
        return address in (self.x, self.y)

    def other(self, address: str) -> str:
        if address == self.x:
            return self.y
        if address == self.y:
            return self.x
        raise ValueError(f"{address} is not an endpoint of {self.x}-{self.y}")
