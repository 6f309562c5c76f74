"""
Submission and monitoring of SIRIUS analysis jobs.

Use it like this:

from siriusbridge.config import JobConfig
from siriusbridge.jobs import JobOrchestrator, FormulaIdParams, CanopusParams

orchestrator = JobOrchestrator(JobConfig())
handle = orchestrator.run(session, formula_id=FormulaIdParams(), canopus=CanopusParams())
handle.status   # JobStatus.SUCCEEDED once the job has finished

# Or submit and poll later
handle = orchestrator.run(session, formula_id=FormulaIdParams(), wait=False)
handle = orchestrator.status(session, handle.job_id)

"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

import pandas as pd
from retrying import Retrying

from ..config.job_config import JobConfig
from ..errors import InvalidJobSpecification
from .parameters import (
    ToolParams,
    SpectraSearchParams,
    FormulaIdParams,
    ZodiacParams,
    FingerprintPredictionParams,
    CanopusParams,
    StructureDbSearchParams,
    MsNovelistParams,
    FINGERPRINT_CONSUMERS,
)

if TYPE_CHECKING:
    from ..connection.session import SiriusSession


class JobStatus(Enum):
    QUEUED = 'queued'
    RUNNING = 'running'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELLED)


# Service job states
SERVICE_STATES = {
    'WAITING': JobStatus.QUEUED,
    'READY': JobStatus.QUEUED,
    'QUEUED': JobStatus.QUEUED,
    'SUBMITTED': JobStatus.QUEUED,
    'RUNNING': JobStatus.RUNNING,
    'DONE': JobStatus.SUCCEEDED,
    'FAILED': JobStatus.FAILED,
    'CANCELED': JobStatus.CANCELLED,
}


@dataclass(frozen=True)
class JobHandle:
    """Snapshot of a job on the service."""

    job_id: str
    project_id: str
    status: JobStatus
    command: Optional[str] = None
    affected_feature_ids: List[str] = field(default_factory=list)
    current_progress: Optional[int] = None
    max_progress: Optional[int] = None
    message: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def from_payload(cls, project_id: str, payload: Dict) -> 'JobHandle':
        progress = payload.get('progress') or {}
        state = progress.get('state', 'WAITING')
        return cls(
            job_id=str(payload['id']),
            project_id=project_id,
            status=SERVICE_STATES.get(state, JobStatus.QUEUED),
            command=payload.get('command'),
            affected_feature_ids=list(payload.get('affectedAlignedFeatureIds') or []),
            current_progress=progress.get('currentProgress'),
            max_progress=progress.get('maxProgress'),
            message=progress.get('message'),
            error_message=progress.get('errorMessage'),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class JobOrchestrator:
    """Builds job submissions, submits them and follows their state."""

    def __init__(self, config: Optional[JobConfig] = None):
        self.config = config or JobConfig()

    def build_submission(self, session: 'SiriusSession', tools: Dict[str, Optional[ToolParams]],
                         target_features: Optional[Iterable] = None,
                         recompute: Optional[bool] = None,
                         fallback_adducts: Optional[List[str]] = None) -> Dict:
        """
        Assemble the job submission payload.

        Raises:
            InvalidJobSpecification: no tool requested, or target features
                that are empty or unknown to the project
        """
        requested = [params for params in tools.values() if params is not None]
        if not requested:
            raise InvalidJobSpecification(
                f"At least one tool must be configured (one of: {', '.join(tools)})"
            )

        aligned_feature_ids = self._resolve_targets(session, target_features)

        if (any(isinstance(p, FINGERPRINT_CONSUMERS) for p in requested)
                and not any(isinstance(p, FingerprintPredictionParams) for p in requested)):
            requested.append(FingerprintPredictionParams())

        submission = {
            'alignedFeatureIds': aligned_feature_ids,
            'recompute': self.config.recompute if recompute is None else recompute,
        }
        if fallback_adducts:
            submission['fallbackAdducts'] = list(fallback_adducts)
        for params in requested:
            submission[params.payload_key] = params.to_dict()
        return submission

    def _resolve_targets(self, session: 'SiriusSession', target_features: Optional[Iterable]) -> List[str]:
        if target_features is None:
            ids = [f['alignedFeatureId'] for f in session.client.list_features(session.project_id)]
            if not ids:
                raise InvalidJobSpecification(f"Project '{session.project_id}' has no features")
            return ids

        if isinstance(target_features, str):
            target_features = [target_features]
        target_features = list(target_features)
        if not target_features:
            raise InvalidJobSpecification("target_features is empty")
        try:
            return session.feature_map.resolve(target_features)
        except KeyError as e:
            raise InvalidJobSpecification(e.args[0]) from e

    def run(self, session: 'SiriusSession', *,
            spectra_search: Optional[SpectraSearchParams] = None,
            formula_id: Optional[FormulaIdParams] = None,
            zodiac: Optional[ZodiacParams] = None,
            fingerprint_prediction: Optional[FingerprintPredictionParams] = None,
            canopus: Optional[CanopusParams] = None,
            structure_db_search: Optional[StructureDbSearchParams] = None,
            ms_novelist: Optional[MsNovelistParams] = None,
            target_features: Optional[Iterable] = None,
            recompute: Optional[bool] = None,
            fallback_adducts: Optional[List[str]] = None,
            wait: Optional[bool] = None) -> JobHandle:
        """
        Submit a job running the configured tools.

        Args:
            session: Active session
            spectra_search ... ms_novelist: Parameter groups; None skips the tool
            target_features: Caller feature ids; all project features if None
            recompute: Overwrite existing results (config.recompute if None)
            fallback_adducts: Adducts tried for features with unknown adduct
            wait: Block until the job is finished (config.wait if None)

        Returns:
            JobHandle, in a terminal state when waiting
        """
        tools = {
            'spectra_search': spectra_search,
            'formula_id': formula_id,
            'zodiac': zodiac,
            'fingerprint_prediction': fingerprint_prediction,
            'canopus': canopus,
            'structure_db_search': structure_db_search,
            'ms_novelist': ms_novelist,
        }
        submission = self.build_submission(session, tools, target_features, recompute, fallback_adducts)

        payload = session.client.submit_job(session.project_id, submission)
        handle = JobHandle.from_payload(session.project_id, payload)
        if self.config.verbose:
            print(f"Submitted job {handle.job_id} for {len(submission['alignedFeatureIds'])} features")

        wait = self.config.wait if wait is None else wait
        if wait:
            handle = self.wait(session, handle)
        return handle

    def status(self, session: 'SiriusSession', job_id: str) -> JobHandle:
        """Query the current state of a job."""
        return JobHandle.from_payload(session.project_id, session.client.get_job(session.project_id, job_id))

    def wait(self, session: 'SiriusSession', handle: JobHandle) -> JobHandle:
        """
        Poll until the job reaches a terminal state.

        The interval doubles from 2 * config.poll_interval up to
        config.max_poll_interval. There is no overall timeout.
        """
        if handle.is_terminal:
            return handle

        retrying = Retrying(
            retry_on_result=lambda h: not h.is_terminal,
            retry_on_exception=lambda e: False,
            wait_exponential_multiplier=self.config.poll_interval * 1000,
            wait_exponential_max=self.config.max_poll_interval * 1000,
        )
        handle = retrying.call(self._poll, session, handle.job_id)
        if self.config.verbose:
            print(f"Job {handle.job_id} finished with status '{handle.status.value}'")
        return handle

    def _poll(self, session: 'SiriusSession', job_id: str) -> JobHandle:
        handle = self.status(session, job_id)
        if self.config.verbose and handle.max_progress:
            print(f"Job {job_id}: {handle.status.value} "
                  f"({handle.current_progress}/{handle.max_progress})")
        return handle

    def cancel(self, session: 'SiriusSession', job_id: str) -> JobHandle:
        """Cancel a job if running and remove it from the service."""
        handle = self.status(session, job_id)
        session.client.delete_job(session.project_id, job_id, cancel_if_running=True, await_deletion=True)
        if self.config.verbose:
            print(f"Cancelled job {job_id}")
        if handle.status == JobStatus.SUCCEEDED:
            return handle
        return replace(handle, status=JobStatus.CANCELLED)

    def list_jobs(self, session: 'SiriusSession') -> pd.DataFrame:
        """Table of the project's jobs."""
        handles = [JobHandle.from_payload(session.project_id, p)
                   for p in session.client.list_jobs(session.project_id)]
        jobs = pd.DataFrame([{
            'job_id': h.job_id,
            'status': h.status.value,
            'command': h.command,
            'n_features': len(h.affected_feature_ids),
            'current_progress': h.current_progress,
            'max_progress': h.max_progress,
            'error_message': h.error_message,
        } for h in handles])
        return jobs
