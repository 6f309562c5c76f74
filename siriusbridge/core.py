"""
Core engine driving a SIRIUS service from spectra tables to results.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from .config.sirius_config import SiriusConfig
from .connection import (
    SiriusClient, SiriusSession, open_project, shutdown,
    list_databases, create_database, remove_database,
)
from .feature_import import (
    FeatureImporter, IdentifierMap, delete_features, map_features, features_info,
)
from .jobs import JobHandle, JobOrchestrator
from .results import ResultRetriever


class SiriusEngine:
    """
    Main engine for annotating MS features with SIRIUS.

    This class orchestrates the complete workflow:
    1. Connect to the SIRIUS service and open a project
    2. Import MS1/MS2 spectra tables as features
    3. Run analysis jobs on the imported features
    4. Retrieve results as tables or nested dicts
    """

    def __init__(self, config: Optional[SiriusConfig] = None,
                 client: Optional[SiriusClient] = None):
        """Initialize the engine; the service is contacted on connect()."""
        self.config = config or SiriusConfig()
        self.client = client

        # Initialize components
        self.importer = FeatureImporter(self.config)
        self.orchestrator = JobOrchestrator(self.config)
        self.retriever = ResultRetriever(self.config)

        self.session: Optional[SiriusSession] = None

    def _require_session(self) -> SiriusSession:
        if self.session is None:
            raise ValueError("Must connect to SIRIUS first")
        return self.session

    # Connection

    def connect(self, project_id: Optional[str] = None,
                path: Optional[Union[str, Path]] = None) -> SiriusSession:
        """Open (or create) a project and bind the engine to it."""
        if self.client is None:
            self.client = SiriusClient.from_config(self.config)
        project_id = project_id or self.config.project_id
        path = path or self.config.project_path(project_id)
        self.session = open_project(self.client, project_id, path=path,
                                    verbose=self.config.verbose)
        if self.config.verbose:
            print(f"Project '{project_id}' holds {len(self.session.feature_map)} mapped features")
        return self.session

    def switch_project(self, project_id: str,
                       path: Optional[Union[str, Path]] = None) -> SiriusSession:
        self._require_session()
        return self.connect(project_id, path)

    def shutdown(self) -> None:
        """Stop the SIRIUS service and drop the session."""
        shutdown(self._require_session(), verbose=self.config.verbose)
        self.session = None

    # Features

    @property
    def feature_map(self) -> IdentifierMap:
        return self._require_session().feature_map

    def import_features(self, ms1: pd.DataFrame, ms2: pd.DataFrame,
                        adducts: Optional[Sequence[str]] = None,
                        delete_existing: Optional[bool] = None) -> IdentifierMap:
        """
        Import spectra tables into the current project.

        Returns:
            IdentifierMap of the project after the import
        """
        self.session = self.importer.import_features(
            self._require_session(), ms1, ms2, adducts=adducts, delete_existing=delete_existing
        )
        return self.session.feature_map

    def delete_features(self, features: Optional[Iterable] = None) -> IdentifierMap:
        self.session = delete_features(self._require_session(), features,
                                       verbose=self.config.verbose)
        return self.session.feature_map

    def map_features(self) -> IdentifierMap:
        self.session = map_features(self._require_session())
        return self.session.feature_map

    def features_info(self) -> pd.DataFrame:
        return features_info(self._require_session())

    # Jobs

    def run(self, **kwargs) -> JobHandle:
        """Submit a job; keyword arguments as JobOrchestrator.run."""
        return self.orchestrator.run(self._require_session(), **kwargs)

    def job_info(self, job_id: str) -> JobHandle:
        return self.orchestrator.status(self._require_session(), job_id)

    def wait_for_job(self, handle: JobHandle) -> JobHandle:
        return self.orchestrator.wait(self._require_session(), handle)

    def cancel_job(self, job_id: str) -> JobHandle:
        return self.orchestrator.cancel(self._require_session(), job_id)

    def list_jobs(self) -> pd.DataFrame:
        return self.orchestrator.list_jobs(self._require_session())

    # Results

    def results(self, result_kind: str, **kwargs):
        """Retrieve results; keyword arguments as ResultRetriever.results."""
        return self.retriever.results(self._require_session(), result_kind, **kwargs)

    def summary(self, features: Optional[Iterable] = None) -> pd.DataFrame:
        return self.retriever.summary(self._require_session(), features)

    # Databases

    def list_databases(self) -> pd.DataFrame:
        return list_databases(self._require_session())

    def create_database(self, database_id: str, **kwargs) -> Dict:
        return create_database(self._require_session(), database_id, **kwargs)

    def remove_database(self, database_id: str, delete: bool = False) -> None:
        remove_database(self._require_session(), database_id, delete=delete)

    def project_ids(self) -> List[str]:
        if self.client is None:
            self.client = SiriusClient.from_config(self.config)
        return [p.get('projectId') for p in self.client.list_projects()]
