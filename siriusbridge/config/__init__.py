from .base_config import BaseConfig
from .import_config import ImportConfig, UNKNOWN_ADDUCT
from .job_config import JobConfig
from .results_config import ResultsConfig, RETURN_SHAPES
from .sirius_config import SiriusConfig

__all__ = [
    'BaseConfig',
    'ImportConfig',
    'JobConfig',
    'ResultsConfig',
    'SiriusConfig',
    'UNKNOWN_ADDUCT',
    'RETURN_SHAPES',
]
