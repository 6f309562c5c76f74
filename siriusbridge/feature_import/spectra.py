"""
Conversion of raw spectra rows into the canonical spectrum records SIRIUS
accepts.

A spectra table is a pandas DataFrame with one spectrum per row: peak arrays
in the configured m/z and intensity columns, plus the scan metadata columns
``ms_level``, ``scan_index``, ``precursor_mz``, ``collision_energy`` and
``polarity``.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from ..config.import_config import ImportConfig


@dataclass(frozen=True)
class SimplePeak:
    mz: float
    intensity: float

    def to_dict(self) -> Dict:
        return {'mz': self.mz, 'intensity': self.intensity}


@dataclass(frozen=True)
class BasicSpectrum:
    """Canonical spectrum record. Absent optional values are None."""

    ms_level: int
    scan_number: Optional[int]
    peaks: List[SimplePeak] = field(default_factory=list)
    precursor_mz: Optional[float] = None
    collision_energy: Optional[str] = None

    def to_dict(self) -> Dict:
        """Service payload; absent optional fields are left out."""
        spectrum = {
            'msLevel': self.ms_level,
            'peaks': [p.to_dict() for p in self.peaks],
        }
        if self.scan_number is not None:
            spectrum['scanNumber'] = self.scan_number
        if self.precursor_mz is not None:
            spectrum['precursorMz'] = self.precursor_mz
        if self.collision_energy is not None:
            spectrum['collisionEnergy'] = self.collision_energy
        return spectrum


def _optional_int(value) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


def format_collision_energy(value) -> Optional[str]:
    """Collision energy as a string, or None when missing or zero."""
    if value is None or pd.isna(value) or value == 0:
        return None
    return f"{float(value):g}"


def normalize_spectrum(mz_vals, intensity_vals, metadata: pd.Series) -> BasicSpectrum:
    """
    Convert one raw spectrum into a BasicSpectrum.

    Peaks keep their acquisition order. NaN values are passed through.

    Args:
        mz_vals: m/z values of the peaks
        intensity_vals: Intensities of the peaks
        metadata: Scan metadata row

    Returns:
        BasicSpectrum for the row
    """
    mz_vals = np.asarray(mz_vals, dtype=float)
    intensity_vals = np.asarray(intensity_vals, dtype=float)
    peaks = [SimplePeak(mz=float(mz), intensity=float(i))
             for mz, i in zip(mz_vals, intensity_vals)]

    ms_level = int(metadata['ms_level'])
    precursor_mz = metadata.get('precursor_mz') if ms_level == 2 else None
    if precursor_mz is not None:
        precursor_mz = float(precursor_mz)

    return BasicSpectrum(
        ms_level=ms_level,
        scan_number=_optional_int(metadata.get('scan_index')),
        peaks=peaks,
        precursor_mz=precursor_mz,
        collision_energy=format_collision_energy(metadata.get('collision_energy')),
    )


def normalize_spectra(spectra: pd.DataFrame, config: ImportConfig) -> List[BasicSpectrum]:
    """Normalize every row of a spectra table, in row order."""
    return [
        normalize_spectrum(row[config.mz_column], row[config.intensity_column], row)
        for _, row in spectra.iterrows()
    ]
