from dataclasses import dataclass
from .base_config import BaseConfig


@dataclass
class JobConfig(BaseConfig):
    """Configuration parameters for submitting and awaiting SIRIUS jobs."""

    # Polling backoff in seconds: poll_interval * 2**attempt, capped
    poll_interval: float = 1.0
    max_poll_interval: float = 30.0

    recompute: bool = False
    wait: bool = True

    def __post_init__(self):
        super().__post_init__()
        if self.poll_interval < 0 or self.max_poll_interval < 0:
            raise ValueError("Polling intervals must be non-negative")
