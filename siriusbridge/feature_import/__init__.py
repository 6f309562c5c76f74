"""
siriusbridge feature import module.

Turns MS1/MS2 spectra tables into SIRIUS feature imports, uploads them and
keeps the mapping between caller feature ids and SIRIUS aligned feature ids.
"""

from .spectra import SimplePeak, BasicSpectrum, normalize_spectrum, normalize_spectra
from .grouping import (
    GroupingKey, FEATURE_ID, CHROM_PEAK_ID, SPECTRA_ID, GROUPING_KEYS, detect_grouping_key
)
from .assembly import FeatureImport, FeatureAssembler, resolve_adducts, normalize_charge
from .identifier_map import IdentifierMap, build_identifier_map
from .core import FeatureImporter, delete_features, map_features, features_info

__all__ = [
    'SimplePeak',
    'BasicSpectrum',
    'normalize_spectrum',
    'normalize_spectra',
    'GroupingKey',
    'FEATURE_ID',
    'CHROM_PEAK_ID',
    'SPECTRA_ID',
    'GROUPING_KEYS',
    'detect_grouping_key',
    'FeatureImport',
    'FeatureAssembler',
    'resolve_adducts',
    'normalize_charge',
    'IdentifierMap',
    'build_identifier_map',
    'FeatureImporter',
    'delete_features',
    'map_features',
    'features_info',
]
