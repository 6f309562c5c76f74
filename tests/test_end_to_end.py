"""End-to-end tests through the engine facade and the workflow."""

import json

import pandas as pd
import pytest

from siriusbridge import SiriusEngine, SiriusWorkflow
from siriusbridge.jobs import CanopusParams, FormulaIdParams, JobStatus


@pytest.fixture
def engine(config, fake_client):
    return SiriusEngine(config, client=fake_client)


class TestEngine:

    def test_requires_connection(self, engine, chrom_peak_ms1, chrom_peak_ms2):
        with pytest.raises(ValueError, match='connect'):
            engine.import_features(chrom_peak_ms1, chrom_peak_ms2)

    def test_two_chromatographic_peaks(self, engine, chrom_peak_ms1, chrom_peak_ms2):
        """Import CP1/CP2, run formula identification and fetch the top formulas."""
        engine.connect()

        feature_map = engine.import_features(chrom_peak_ms1, chrom_peak_ms2, delete_existing=True)
        assert set(feature_map) == {'CP1', 'CP2'}

        handle = engine.run(formula_id=FormulaIdParams(), wait=True)
        assert handle.is_terminal
        assert handle.status is JobStatus.SUCCEEDED

        formulas = engine.results('formulaId', top_formula=5)
        assert set(formulas['feature_id']) <= {'CP1', 'CP2'}
        assert formulas.groupby('feature_id').size().max() <= 5
        for _, group in formulas.groupby('feature_id'):
            assert group['formula_rank'].is_monotonic_increasing

    def test_job_control(self, engine, chrom_peak_ms1, chrom_peak_ms2):
        engine.client.polls_until_done = 10
        engine.connect()
        engine.import_features(chrom_peak_ms1, chrom_peak_ms2)

        handle = engine.run(canopus=CanopusParams(), target_features=['CP1'], wait=False)
        assert engine.job_info(handle.job_id).status is JobStatus.RUNNING
        assert engine.cancel_job(handle.job_id).status is JobStatus.CANCELLED
        assert engine.list_jobs().empty

    def test_feature_management(self, engine, chrom_peak_ms1, chrom_peak_ms2):
        engine.connect()
        engine.import_features(chrom_peak_ms1, chrom_peak_ms2)

        assert engine.features_info()['feature_id'].tolist() == ['CP1', 'CP2']
        assert set(engine.delete_features(['CP2'])) == {'CP1'}
        assert set(engine.map_features()) == {'CP1'}

    def test_switch_project_and_shutdown(self, engine):
        engine.connect()
        engine.switch_project('second')

        assert engine.session.project_id == 'second'
        assert set(engine.project_ids()) == {'siriusbridge', 'second'}

        engine.shutdown()
        assert engine.session is None
        assert engine.client.is_shut_down


class TestWorkflow:

    def test_run_annotation_writes_outputs(self, engine, config, chrom_peak_ms1, chrom_peak_ms2, tmp_path):
        workflow = SiriusWorkflow(config, engine=engine)
        output_dir = tmp_path / 'output'

        output_files = workflow.run_annotation(
            chrom_peak_ms1, chrom_peak_ms2, str(output_dir),
            tools={'formula_id': FormulaIdParams(), 'canopus': CanopusParams()},
            adducts=['[M-H]-'],
        )

        assert set(output_files) == {'feature_map', 'formulaId', 'compoundClass', 'summary'}
        formulas = pd.read_csv(output_files['formulaId'])
        assert set(formulas['feature_id']) == {'CP1', 'CP2'}
        summary = pd.read_csv(output_files['summary'])
        assert summary['npc_pathway'].tolist() == ['Fatty acids', 'Fatty acids']

        with open(output_dir / 'siriusbridge_config.json') as f:
            dumped = json.load(f)
        assert dumped['configuration']['top_formula'] == config.top_formula
        assert dumped['tools']['formula_id']['instrument'] == 'QTOF'

    def test_unavailable_kinds_are_skipped(self, engine, config, chrom_peak_ms1, chrom_peak_ms2, tmp_path):
        workflow = SiriusWorkflow(config, engine=engine)

        output_files = workflow.run_annotation(
            chrom_peak_ms1, chrom_peak_ms2, str(tmp_path),
            tools={'formula_id': FormulaIdParams()},
            result_kinds=['formulaId', 'structureDb'],
        )

        assert 'formulaId' in output_files
        assert 'structureDb' not in output_files
