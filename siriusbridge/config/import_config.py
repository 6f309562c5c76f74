from dataclasses import dataclass
from .base_config import BaseConfig

UNKNOWN_ADDUCT = '[M+?]+'


@dataclass
class ImportConfig(BaseConfig):
    """Configuration parameters for importing features into a SIRIUS project."""

    # Used for every feature when the caller supplies no adducts
    default_adduct: str = UNKNOWN_ADDUCT
    delete_existing_features: bool = True

    # Peak columns of the spectra tables (one array-like per row)
    mz_column: str = 'spectrum_mz_vals'
    intensity_column: str = 'spectrum_intensity_vals'
