"""Scheduling run configuration."""

import os
from dataclasses import dataclass
from typing import Optional

from .scheduler import Placement
from .taskgraph import QueuePolicy


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


@dataclass
class ScheduleConfig:
    placement: Placement = Placement.GREEDY
    queue_policy: QueuePolicy = QueuePolicy.CRITICAL_PATH
    link_count: int = 1  # Physical links per compute node
    duplex: bool = False
    horizon: Optional[int] = None  # Ledger capacity in tacts, None for unbounded
    seed: Optional[int] = None  # Random placement seed

    def validate(self):
        if self.link_count < 1:
            raise ValueError(f"link_count must be at least 1, got {self.link_count}")
        if self.horizon is not None and self.horizon < 1:
            raise ValueError(f"horizon must be positive, got {self.horizon}")

    @classmethod
    def from_env(cls, prefix: str = "TACTSCHED_") -> "ScheduleConfig":
        """Read settings from ``TACTSCHED_*`` environment variables."""
        config = cls(
            placement=Placement(os.getenv(f"{prefix}PLACEMENT", Placement.GREEDY.value)),
            queue_policy=QueuePolicy(os.getenv(f"{prefix}QUEUE", QueuePolicy.CRITICAL_PATH.value)),
            link_count=int(os.getenv(f"{prefix}LINKS", "1")),
            duplex=os.getenv(f"{prefix}DUPLEX", "false").lower() == "true",
            horizon=_optional_int(os.getenv(f"{prefix}HORIZON")),
            seed=_optional_int(os.getenv(f"{prefix}SEED")),
        )
        config.validate()
        return config
