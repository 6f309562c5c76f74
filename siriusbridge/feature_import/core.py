"""
Import of MS1/MS2 spectra tables into the active SIRIUS project.

Use it like this:

from siriusbridge.config import ImportConfig
from siriusbridge.feature_import import FeatureImporter

importer = FeatureImporter(ImportConfig())
session = importer.import_features(session, ms1, ms2, adducts=['[M-H]-'])
session.feature_map['CP1']   # aligned feature id of chromatographic peak CP1

"""

from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

import pandas as pd

from ..config.import_config import ImportConfig
from ..errors import FeatureUploadFailed, ServiceError
from .assembly import FeatureAssembler, FeatureImport, resolve_adducts
from .grouping import detect_grouping_key
from .identifier_map import build_identifier_map

if TYPE_CHECKING:
    from ..connection.session import SiriusSession

FEATURE_COLUMNS = {
    'alignedFeatureId': 'aligned_feature_id',
    'externalFeatureId': 'feature_id',
    'name': 'name',
    'ionMass': 'ion_mass',
    'charge': 'charge',
    'detectedAdducts': 'detected_adducts',
    'rtStartSeconds': 'rt_start_seconds',
    'rtEndSeconds': 'rt_end_seconds',
    'rtApexSeconds': 'rt_apex_seconds',
    'computing': 'computing',
}


class FeatureImporter:
    """Validates, assembles and uploads features, then refreshes the identifier map."""

    def __init__(self, config: Optional[ImportConfig] = None):
        self.config = config or ImportConfig()
        self.assembler = FeatureAssembler(self.config)

    def prepare(self, ms1: pd.DataFrame, ms2: pd.DataFrame,
                adducts: Optional[Sequence[str]] = None) -> List[FeatureImport]:
        """
        Build all FeatureImports without contacting the service.

        Raises:
            UnknownGroupingKey, AdductCardinalityMismatch, MissingCounterpartSpectra
        """
        key = detect_grouping_key(ms1)
        n_features = self.assembler.count_features(ms1, key)
        adducts = resolve_adducts(adducts, n_features, self.config.default_adduct)
        if self.config.verbose:
            print(f"Importing {n_features} features grouped by '{key.name}'")
        return self.assembler.assemble(ms1, ms2, key, adducts)

    def import_features(self, session: 'SiriusSession', ms1: pd.DataFrame, ms2: pd.DataFrame,
                        adducts: Optional[Sequence[str]] = None,
                        delete_existing: Optional[bool] = None) -> 'SiriusSession':
        """
        Import features into the session's project.

        Args:
            session: Active session
            ms1: MS1 spectra table carrying one of the grouping columns
            ms2: MS2 spectra table with the same grouping column
            adducts: None/empty, one adduct, or one adduct per feature
            delete_existing: Remove the project's previous features
                (config.delete_existing_features if None)

        Returns:
            SiriusSession whose identifier map mirrors the project
        """
        if delete_existing is None:
            delete_existing = self.config.delete_existing_features

        features = self.prepare(ms1, ms2, adducts)
        previous = session.client.list_features(session.project_id)

        external_ids = [f.external_feature_id for f in features]
        self._upload(session, features, previous)

        # Previous features are only removed once the whole batch is stored
        known = {f['alignedFeatureId'] for f in previous}
        stored = {
            str(f.get('externalFeatureId'))
            for f in session.client.list_features(session.project_id)
            if f['alignedFeatureId'] not in known
        }
        missing = [i for i in external_ids if i not in stored]
        if missing:
            self._reconcile(session, previous, external_ids)
            raise FeatureUploadFailed("Features missing from the project after upload", missing)

        if delete_existing and previous:
            stale_ids = [f['alignedFeatureId'] for f in previous]
            try:
                session.client.delete_features(session.project_id, stale_ids)
            except ServiceError as e:
                self._reconcile(session, previous, external_ids)
                raise FeatureUploadFailed("Could not remove previously imported features", external_ids,
                                          status_code=e.status_code, payload=e.payload) from e
            if self.config.verbose:
                print(f"Deleted {len(stale_ids)} previously imported features")

        feature_map = build_identifier_map(session.client.list_features(session.project_id))

        if self.config.verbose:
            print(f"Imported {len(features)} features into project '{session.project_id}'")
        return session.with_feature_map(feature_map)

    def _upload(self, session: 'SiriusSession', features: List[FeatureImport],
                previous: List[dict]) -> None:
        """Upload the batch; on failure remove whatever the failed call created."""
        external_ids = [f.external_feature_id for f in features]
        try:
            session.client.add_features(session.project_id, [f.to_dict() for f in features])
        except ServiceError as e:
            self._reconcile(session, previous, external_ids)
            raise FeatureUploadFailed("Feature upload rejected by SIRIUS", external_ids,
                                      status_code=e.status_code, payload=e.payload) from e

    def _reconcile(self, session: 'SiriusSession', previous: List[dict],
                   external_ids: List[str]) -> None:
        known = {f['alignedFeatureId'] for f in previous}
        uploaded = set(external_ids)
        current = session.client.list_features(session.project_id)
        partial = [
            f['alignedFeatureId'] for f in current
            if f['alignedFeatureId'] not in known and str(f.get('externalFeatureId')) in uploaded
        ]
        if partial:
            session.client.delete_features(session.project_id, partial)
            if self.config.verbose:
                print(f"Removed {len(partial)} partially uploaded features")


def delete_features(session: 'SiriusSession', features: Optional[Iterable] = None,
                    verbose: bool = True) -> 'SiriusSession':
    """
    Delete features from the project.

    Args:
        session: Active session
        features: Caller feature ids to delete; all features if None

    Returns:
        SiriusSession with a refreshed identifier map
    """
    if features is None:
        ids = [f['alignedFeatureId'] for f in session.client.list_features(session.project_id)]
    else:
        ids = session.feature_map.resolve(features)
    if ids:
        session.client.delete_features(session.project_id, ids)
    if verbose:
        print(f"Deleted {len(ids)} features from project '{session.project_id}'")
    return session.refresh()


def map_features(session: 'SiriusSession') -> 'SiriusSession':
    """Rebuild the identifier map from the service."""
    return session.refresh()


def features_info(session: 'SiriusSession') -> pd.DataFrame:
    """Table of the project's features as stored by the service."""
    info = pd.DataFrame(session.client.list_features(session.project_id))
    if info.empty:
        return pd.DataFrame(columns=list(FEATURE_COLUMNS.values()))
    info = info.rename(columns=FEATURE_COLUMNS)
    important_cols = [c for c in FEATURE_COLUMNS.values() if c in info.columns]
    other_cols = [c for c in info.columns if c not in important_cols]
    return info[important_cols + other_cols]
