from dataclasses import dataclass
from .import_config import ImportConfig
from .job_config import JobConfig
from .results_config import ResultsConfig


@dataclass
class SiriusConfig(ImportConfig, JobConfig, ResultsConfig):
    """All parameters of an end-to-end run, loadable from a single YAML file."""
