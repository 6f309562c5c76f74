"""
Assembly of per-feature import bundles from MS1 and MS2 spectra tables.

Use it like this:

from siriusbridge.config import ImportConfig
from siriusbridge.feature_import import FeatureAssembler, detect_grouping_key, resolve_adducts

assembler = FeatureAssembler(ImportConfig())
key = detect_grouping_key(ms1)
adducts = resolve_adducts(['[M+H]+'], assembler.count_features(ms1, key))
features = assembler.assemble(ms1, ms2, key, adducts)
payload = [f.to_dict() for f in features]

"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pandas as pd
from tqdm import tqdm

from ..config.import_config import ImportConfig, UNKNOWN_ADDUCT
from ..errors import AdductCardinalityMismatch, MissingCounterpartSpectra
from .grouping import GroupingKey
from .spectra import BasicSpectrum, normalize_spectra


@dataclass(frozen=True)
class FeatureImport:
    """One feature ready for upload, with its MS1 and MS2 spectra."""

    external_feature_id: str
    ion_mass: float
    charge: int
    detected_adducts: List[str]
    ms1_spectra: List[BasicSpectrum] = field(default_factory=list)
    ms2_spectra: List[BasicSpectrum] = field(default_factory=list)
    rt_start_seconds: Optional[float] = None
    rt_end_seconds: Optional[float] = None
    rt_apex_seconds: Optional[float] = None

    def to_dict(self) -> Dict:
        feature = {
            'externalFeatureId': self.external_feature_id,
            'ionMass': self.ion_mass,
            'charge': self.charge,
            'detectedAdducts': list(self.detected_adducts),
            'ms1Spectra': [s.to_dict() for s in self.ms1_spectra],
            'ms2Spectra': [s.to_dict() for s in self.ms2_spectra],
        }
        rt_fields = {
            'rtStartSeconds': self.rt_start_seconds,
            'rtEndSeconds': self.rt_end_seconds,
            'rtApexSeconds': self.rt_apex_seconds,
        }
        feature.update({k: v for k, v in rt_fields.items() if v is not None})
        return feature


def resolve_adducts(adducts: Optional[Sequence[str]], n_features: int,
                    default_adduct: str = UNKNOWN_ADDUCT) -> List[str]:
    """
    Expand the caller's adducts to exactly one adduct per feature.

    No adducts means ``default_adduct`` for every feature; a single adduct is
    used for every feature; otherwise one adduct per feature is required.

    Raises:
        AdductCardinalityMismatch: for any other number of adducts
    """
    if isinstance(adducts, str):
        adducts = [adducts]
    adducts = list(adducts or [])
    if not adducts:
        adducts = [default_adduct]
    if len(adducts) == 1:
        return adducts * n_features
    if len(adducts) != n_features:
        raise AdductCardinalityMismatch(len(adducts), n_features)
    return adducts


def normalize_charge(polarity) -> int:
    """Unknown polarity (0 or missing) is treated as negative mode."""
    if polarity is None or pd.isna(polarity) or polarity == 0:
        return -1
    return int(polarity)


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


class FeatureAssembler:
    """Groups MS1/MS2 spectra by feature and builds FeatureImport bundles."""

    def __init__(self, config: ImportConfig):
        self.config = config

    def count_features(self, ms1: pd.DataFrame, key: GroupingKey) -> int:
        return len(self.feature_ids(ms1, key))

    def feature_ids(self, ms1: pd.DataFrame, key: GroupingKey) -> List:
        """Distinct key values in order of first appearance in ms1."""
        return list(pd.unique(ms1[key.id_column]))

    def validate_columns(self, ms1: pd.DataFrame, ms2: pd.DataFrame, key: GroupingKey) -> None:
        peak_columns = [self.config.mz_column, self.config.intensity_column, 'ms_level']
        required = {
            'ms1': (ms1, key.metadata_columns + peak_columns),
            'ms2': (ms2, [key.id_column] + peak_columns),
        }
        for label, (spectra, columns) in required.items():
            missing_cols = [col for col in columns if col not in spectra.columns]
            if missing_cols:
                raise ValueError(f"Missing required columns in {label} spectra: {missing_cols}")

    def check_counterparts(self, ms1: pd.DataFrame, ms2: pd.DataFrame, key: GroupingKey) -> None:
        """
        Every MS1 feature needs at least one MS2 spectrum.

        Raises:
            MissingCounterpartSpectra: naming every unmatched key value
        """
        ms2_ids = set(ms2[key.id_column].dropna())
        unmatched = [i for i in self.feature_ids(ms1, key) if i not in ms2_ids]
        if unmatched:
            raise MissingCounterpartSpectra(unmatched)

    def assemble(self, ms1: pd.DataFrame, ms2: pd.DataFrame,
                 key: GroupingKey, adducts: Sequence[str]) -> List[FeatureImport]:
        """
        Build one FeatureImport per distinct key value of ms1.

        Args:
            ms1: MS1 spectra table
            ms2: MS2 spectra table
            key: Grouping granularity detected from ms1
            adducts: One adduct per feature, as returned by resolve_adducts

        Returns:
            FeatureImports in order of first appearance in ms1
        """
        self.validate_columns(ms1, ms2, key)
        self.check_counterparts(ms1, ms2, key)

        feature_ids = self.feature_ids(ms1, key)
        if len(adducts) != len(feature_ids):
            raise AdductCardinalityMismatch(len(adducts), len(feature_ids))

        ms1_groups = dict(list(ms1.groupby(key.id_column, sort=False)))
        ms2_groups = dict(list(ms2.groupby(key.id_column, sort=False)))

        features = []
        for feature_id, adduct in tqdm(zip(feature_ids, adducts), total=len(feature_ids),
                                       desc="Assembling features", unit='feature',
                                       disable=not self.config.verbose):
            features.append(self._create_feature_import(
                feature_id, ms1_groups[feature_id], ms2_groups[feature_id], key, adduct
            ))
        return features

    def _create_feature_import(self, feature_id, ms1_group: pd.DataFrame,
                               ms2_group: pd.DataFrame, key: GroupingKey,
                               adduct: str) -> FeatureImport:
        metadata = ms1_group.iloc[0]
        rt_start = rt_end = rt_apex = None
        if key.has_rt_window:
            rt_start, rt_end, rt_apex = (_optional_float(metadata[c]) for c in key.rt_columns)

        return FeatureImport(
            external_feature_id=str(feature_id),
            ion_mass=float(metadata[key.mz_column]),
            charge=normalize_charge(metadata['polarity']),
            detected_adducts=[adduct],
            ms1_spectra=normalize_spectra(ms1_group, self.config),
            ms2_spectra=normalize_spectra(ms2_group, self.config),
            rt_start_seconds=rt_start,
            rt_end_seconds=rt_end,
            rt_apex_seconds=rt_apex,
        )
