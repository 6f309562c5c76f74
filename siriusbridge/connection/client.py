"""
Thin wrapper around the SIRIUS REST API.

Every method maps to one endpoint and returns the decoded JSON payload. No
reshaping happens here; callers in feature_import, jobs and results turn the
payloads into siriusbridge objects.

Use it like this:

from siriusbridge.connection import SiriusClient

client = SiriusClient('http://localhost:8080')
client.list_projects()
"""

from typing import Any, Dict, List, Optional

import requests
from retrying import Retrying

from ..config.base_config import BaseConfig
from ..errors import ServiceError


def _is_transient(exception: Exception) -> bool:
    return isinstance(exception, (requests.ConnectionError, requests.Timeout))


def _error_payload(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


class SiriusClient:
    """
    Client for one SIRIUS REST service. Non-2xx responses and transport
    failures raise ServiceError with the service's response attached.
    Transient connection errors are retried only when ``retries`` > 0.
    """

    def __init__(self, api_url: str = 'http://localhost:8080',
                 timeout: float = 60.0,
                 retries: int = 0,
                 retry_wait: float = 5.0,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.retries = retries
        self.retry_wait = retry_wait
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: BaseConfig, session: Optional[requests.Session] = None) -> 'SiriusClient':
        return cls(
            api_url=config.api_url,
            timeout=config.request_timeout,
            retries=config.request_retries,
            retry_wait=config.retry_wait,
            session=session,
        )

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.api_url}{path}"
        retrying = Retrying(
            stop_max_attempt_number=self.retries + 1,
            wait_fixed=self.retry_wait * 1000,
            retry_on_exception=_is_transient,
        )
        try:
            response = retrying.call(self.session.request, method, url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise ServiceError(f"Could not reach SIRIUS at {url}: {e}") from e

        if not response.ok:
            raise ServiceError(
                f"{method} {path} failed with HTTP {response.status_code}",
                status_code=response.status_code,
                payload=_error_payload(response),
            )
        if not response.content:
            return None
        return response.json()

    # Service

    def info(self) -> Dict:
        return self._request('GET', '/api/info')

    def shutdown(self) -> None:
        self._request('POST', '/actuator/shutdown')

    # Projects

    def list_projects(self) -> List[Dict]:
        return self._request('GET', '/api/projects') or []

    def get_project(self, project_id: str) -> Dict:
        return self._request('GET', f'/api/projects/{project_id}')

    def open_project(self, project_id: str, path: Optional[str] = None) -> Dict:
        params = {'pathToProject': str(path)} if path else None
        return self._request('PUT', f'/api/projects/{project_id}', params=params)

    def create_project(self, project_id: str, path: Optional[str] = None) -> Dict:
        params = {'pathToProject': str(path)} if path else None
        return self._request('POST', f'/api/projects/{project_id}', params=params)

    def close_project(self, project_id: str) -> None:
        self._request('DELETE', f'/api/projects/{project_id}')

    # Aligned features

    def list_features(self, project_id: str) -> List[Dict]:
        return self._request('GET', f'/api/projects/{project_id}/aligned-features') or []

    def add_features(self, project_id: str, features: List[Dict]) -> List[Dict]:
        return self._request('POST', f'/api/projects/{project_id}/aligned-features', json=features) or []

    def delete_features(self, project_id: str, aligned_feature_ids: List[str]) -> None:
        self._request('PUT', f'/api/projects/{project_id}/aligned-features/delete',
                      json=list(aligned_feature_ids))

    # Jobs

    def submit_job(self, project_id: str, submission: Dict) -> Dict:
        return self._request('POST', f'/api/projects/{project_id}/jobs',
                             json=submission, params={'optFields': 'progress'})

    def get_job(self, project_id: str, job_id: str) -> Dict:
        return self._request('GET', f'/api/projects/{project_id}/jobs/{job_id}',
                             params={'optFields': 'progress'})

    def list_jobs(self, project_id: str) -> List[Dict]:
        return self._request('GET', f'/api/projects/{project_id}/jobs',
                             params={'optFields': 'progress'}) or []

    def delete_job(self, project_id: str, job_id: str,
                   cancel_if_running: bool = True, await_deletion: bool = True) -> None:
        params = {
            'cancelIfRunning': str(cancel_if_running).lower(),
            'awaitDeletion': str(await_deletion).lower(),
        }
        self._request('DELETE', f'/api/projects/{project_id}/jobs/{job_id}', params=params)

    # Results

    def _formula_path(self, project_id: str, aligned_feature_id: str, formula_id: str) -> str:
        return f'/api/projects/{project_id}/aligned-features/{aligned_feature_id}/formulas/{formula_id}'

    def get_formulas(self, project_id: str, aligned_feature_id: str) -> List[Dict]:
        path = f'/api/projects/{project_id}/aligned-features/{aligned_feature_id}/formulas'
        return self._request('GET', path) or []

    def get_db_structures(self, project_id: str, aligned_feature_id: str, formula_id: str) -> List[Dict]:
        path = self._formula_path(project_id, aligned_feature_id, formula_id) + '/db-structures'
        return self._request('GET', path) or []

    def get_denovo_structures(self, project_id: str, aligned_feature_id: str, formula_id: str) -> List[Dict]:
        path = self._formula_path(project_id, aligned_feature_id, formula_id) + '/denovo-structures'
        return self._request('GET', path) or []

    def get_compound_classes(self, project_id: str, aligned_feature_id: str, formula_id: str) -> Optional[Dict]:
        path = self._formula_path(project_id, aligned_feature_id, formula_id) + '/compound-classes'
        return self._request('GET', path)

    def get_fragtree(self, project_id: str, aligned_feature_id: str, formula_id: str) -> Optional[Dict]:
        path = self._formula_path(project_id, aligned_feature_id, formula_id) + '/fragtree'
        return self._request('GET', path)

    def get_spectral_matches(self, project_id: str, aligned_feature_id: str) -> List[Dict]:
        path = f'/api/projects/{project_id}/aligned-features/{aligned_feature_id}/spectral-library-matches'
        return self._request('GET', path) or []

    # Searchable databases

    def list_databases(self) -> List[Dict]:
        return self._request('GET', '/api/databases') or []

    def create_database(self, database_id: str, parameters: Optional[Dict] = None) -> Dict:
        return self._request('POST', f'/api/databases/{database_id}', json=parameters or {})

    def remove_database(self, database_id: str, delete: bool = False) -> None:
        self._request('DELETE', f'/api/databases/{database_id}', params={'delete': str(delete).lower()})
