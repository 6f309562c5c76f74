from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional
import yaml


@dataclass
class BaseConfig:
    """Base configuration with the connection parameters shared by all stages."""

    # SIRIUS REST service
    api_url: str = 'http://localhost:8080'
    request_timeout: float = 60.0
    request_retries: int = 0      # transient connection errors only
    retry_wait: float = 5.0       # seconds between retries

    # Project addressing
    project_id: str = 'siriusbridge'
    project_dir: Optional[str] = None  # defaults to the working directory

    verbose: bool = True

    @classmethod
    def from_file(cls, file_path: str):
        """
        Creates a config instance by loading parameters from a YAML file.
        Any parameters in the YAML file will override the class defaults.
        """
        if not file_path:
            return cls()

        with open(file_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        # Keys belonging to other stages are ignored
        valid_fields = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in config_data.items() if k in valid_fields}

        return cls(**filtered_data)

    def __post_init__(self):
        self.api_url = self.api_url.rstrip('/')
        if self.request_retries < 0:
            raise ValueError(f"request_retries must be >= 0, got {self.request_retries}")

    def project_path(self, project_id: Optional[str] = None) -> Path:
        """Default location of the project file for ``project_id``."""
        project_id = project_id or self.project_id
        base = Path(self.project_dir) if self.project_dir else Path.cwd()
        return base / f"{project_id}.sirius"
