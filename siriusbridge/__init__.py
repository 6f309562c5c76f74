"""
siriusbridge: MS spectra tables to SIRIUS annotations
"""

__version__ = "0.1.0"

from . import config
from . import connection
from . import feature_import
from . import jobs
from . import results

from .config import BaseConfig, ImportConfig, JobConfig, ResultsConfig, SiriusConfig
from .connection import SiriusClient, SiriusSession, connect
from .feature_import import FeatureImporter, IdentifierMap
from .jobs import JobOrchestrator, JobHandle, JobStatus
from .results import ResultRetriever
from .core import SiriusEngine
from .workflows import SiriusWorkflow
from .errors import (
    SiriusBridgeError,
    MissingCounterpartSpectra,
    AdductCardinalityMismatch,
    UnknownGroupingKey,
    InvalidJobSpecification,
    ServiceError,
    FeatureUploadFailed,
    ResultKindUnavailable,
)

__all__ = [
    'BaseConfig',
    'ImportConfig',
    'JobConfig',
    'ResultsConfig',
    'SiriusConfig',
    'SiriusClient',
    'SiriusSession',
    'connect',
    'FeatureImporter',
    'IdentifierMap',
    'JobOrchestrator',
    'JobHandle',
    'JobStatus',
    'ResultRetriever',
    'SiriusEngine',
    'SiriusWorkflow',
    'SiriusBridgeError',
    'MissingCounterpartSpectra',
    'AdductCardinalityMismatch',
    'UnknownGroupingKey',
    'InvalidJobSpecification',
    'ServiceError',
    'FeatureUploadFailed',
    'ResultKindUnavailable',
    "config", "connection", "feature_import", "jobs", "results",
]
