from dataclasses import dataclass
from .base_config import BaseConfig

RETURN_SHAPES = ('table', 'nested')


@dataclass
class ResultsConfig(BaseConfig):
    """Configuration parameters for retrieving SIRIUS results."""

    top_formula: int = 5
    top_structure: int = 5
    top_spectral_matches: int = 5
    return_shape: str = 'table'  # 'table' or 'nested'

    def __post_init__(self):
        super().__post_init__()
        if self.return_shape not in RETURN_SHAPES:
            raise ValueError(f"return_shape must be one of {RETURN_SHAPES}, got '{self.return_shape}'")
