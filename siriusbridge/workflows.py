"""
End-to-end SIRIUS annotation workflow.

Use it like this:

from siriusbridge.config import SiriusConfig
from siriusbridge.jobs import FormulaIdParams, CanopusParams
from siriusbridge.workflows import SiriusWorkflow

workflow = SiriusWorkflow(SiriusConfig.from_file('config/siriusbridge.yaml'))
output_files = workflow.run_annotation(
    ms1, ms2, 'sirius_output',
    tools={'formula_id': FormulaIdParams(), 'canopus': CanopusParams()},
)

"""

import dataclasses
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence

import pandas as pd

from . import __version__
from .config.sirius_config import SiriusConfig
from .core import SiriusEngine
from .errors import ResultKindUnavailable
from .jobs import JobStatus
from .jobs.parameters import ToolParams

# Result kinds fetched for each tool of a job
TOOL_RESULT_KINDS = {
    'formula_id': 'formulaId',
    'spectra_search': 'spectralDbMatch',
    'canopus': 'compoundClass',
    'structure_db_search': 'structureDb',
    'ms_novelist': 'deNovoStructure',
}


class SiriusWorkflow:
    """High-level workflow: import, run one job, export results."""

    def __init__(self, config: Optional[SiriusConfig] = None, engine: Optional[SiriusEngine] = None):
        self.config = config or SiriusConfig()
        self.engine = engine or SiriusEngine(self.config)

    def run_annotation(self, ms1: pd.DataFrame, ms2: pd.DataFrame, output_dir: str,
                       tools: Dict[str, ToolParams],
                       adducts: Optional[Sequence[str]] = None,
                       result_kinds: Optional[Iterable[str]] = None) -> Dict[str, str]:
        """
        Run the full annotation workflow.

        Args:
            ms1: MS1 spectra table
            ms2: MS2 spectra table
            output_dir: Output directory path
            tools: Parameter groups keyed by JobOrchestrator.run argument name
            adducts: None, one adduct, or one adduct per feature
            result_kinds: Result kinds to export (derived from tools if None)

        Returns:
            Dict[str, str]: Mapping of result kind to output file path
        """
        print("=== SIRIUS Annotation Workflow ===")

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        self._dump_config_to_json(output_dir, tools)

        if self.engine.session is None:
            self.engine.connect()

        print("\n--- Feature Import ---")
        feature_map = self.engine.import_features(ms1, ms2, adducts=adducts)
        map_file = output_dir / "feature_map.csv"
        feature_map.to_frame().to_csv(map_file, index=False)

        print("\n--- SIRIUS Job ---")
        handle = self.engine.run(wait=True, **tools)
        if handle.status != JobStatus.SUCCEEDED:
            print(f"Job {handle.job_id} ended with status '{handle.status.value}': {handle.error_message}")

        output_files = {'feature_map': str(map_file)}

        print("\n--- Results ---")
        if result_kinds is None:
            result_kinds = [kind for tool, kind in TOOL_RESULT_KINDS.items() if tools.get(tool) is not None]
        for kind in result_kinds:
            try:
                table = self.engine.results(kind, return_shape='table')
            except ResultKindUnavailable as e:
                print(f"Skipping {kind}: {e}")
                continue
            result_file = output_dir / f"{kind}_results.csv"
            table.to_csv(result_file, index=False)
            output_files[kind] = str(result_file)
            print(f"Saved {len(table)} {kind} rows to {result_file}")

        summary_file = output_dir / "summary.csv"
        self.engine.summary().to_csv(summary_file, index=False)
        output_files['summary'] = str(summary_file)

        print("\nSIRIUS annotation workflow complete!")
        return output_files

    def _dump_config_to_json(self, output_dir: Path, tools: Dict[str, ToolParams]):
        """Save configuration and tool parameters to JSON in the output directory."""
        config_file = output_dir / "siriusbridge_config.json"

        config_data = {
            "workflow_info": {
                "timestamp": datetime.now().isoformat(),
                "siriusbridge_version": __version__,
            },
            "configuration": dataclasses.asdict(self.config),
            "tools": {name: params.to_dict() for name, params in tools.items() if params is not None},
        }

        with open(config_file, 'w') as f:
            json.dump(config_data, f, indent=2, default=str)
        print(f"Configuration saved to: {config_file}")
