"""Pytest configuration for siriusbridge tests.

Provides an in-memory stand-in for the SIRIUS REST service and the spectra
tables used across the test modules.
"""

import copy
import itertools

import numpy as np
import pandas as pd
import pytest

from siriusbridge.config import SiriusConfig
from siriusbridge.connection import open_project
from siriusbridge.errors import ServiceError


class FakeSiriusClient:
    """
    Mimics SiriusClient on in-memory state.

    Jobs move WAITING -> RUNNING -> DONE over successive get_job calls; once
    done, the requested tools count as computed for the affected features.
    """

    ADDUCT = '[M-H]-'

    def __init__(self, polls_until_done: int = 2, n_formulas: int = 8):
        self.polls_until_done = polls_until_done
        self.n_formulas = n_formulas
        self.projects = {}
        self.features = {}
        self.jobs = {}
        self.computed = {}
        self.databases = [{
            'databaseId': 'BIO',
            'displayName': 'Biological database',
            'customDb': False,
            'searchable': True,
            'numberOfStructures': 1000,
        }]
        self.calls = []
        self.fail_upload = False
        self.partial_upload = 0
        self.store_only = None
        self.failing_deletes = 0
        self.fail_jobs = False
        self.is_shut_down = False
        self._ids = itertools.count(1)

    def _log(self, name):
        self.calls.append(name)

    def _not_found(self, what):
        return ServiceError(f"GET {what} failed with HTTP 404", status_code=404,
                            payload={'message': f'{what} not found'})

    # Service

    def info(self):
        self._log('info')
        return {'siriusVersion': '6.0.0'}

    def shutdown(self):
        self._log('shutdown')
        self.is_shut_down = True

    # Projects

    def list_projects(self):
        self._log('list_projects')
        return list(self.projects.values())

    def get_project(self, project_id):
        return self.projects[project_id]

    def _add_project(self, project_id, path):
        self.projects[project_id] = {'projectId': project_id, 'location': str(path) if path else None}
        self.features.setdefault(project_id, [])
        self.jobs.setdefault(project_id, {})
        return self.projects[project_id]

    def open_project(self, project_id, path=None):
        self._log('open_project')
        return self._add_project(project_id, path)

    def create_project(self, project_id, path=None):
        self._log('create_project')
        return self._add_project(project_id, path)

    def close_project(self, project_id):
        self._log('close_project')
        del self.projects[project_id]

    # Aligned features

    def list_features(self, project_id):
        self._log('list_features')
        return copy.deepcopy(self.features[project_id])

    def _store_feature(self, project_id, feature):
        stored = {
            'alignedFeatureId': str(next(self._ids)),
            'externalFeatureId': feature['externalFeatureId'],
            'name': feature['externalFeatureId'],
            'ionMass': feature['ionMass'],
            'charge': feature['charge'],
            'detectedAdducts': feature['detectedAdducts'],
            'rtStartSeconds': feature.get('rtStartSeconds'),
            'rtEndSeconds': feature.get('rtEndSeconds'),
            'rtApexSeconds': feature.get('rtApexSeconds'),
            'computing': False,
        }
        self.features[project_id].append(stored)
        return stored

    def add_features(self, project_id, features):
        self._log('add_features')
        if self.fail_upload:
            for feature in features[:self.partial_upload]:
                self._store_feature(project_id, feature)
            raise ServiceError("POST /aligned-features failed with HTTP 500", status_code=500,
                               payload={'message': 'Import aborted'})
        self.uploaded = copy.deepcopy(features)
        stored = features if self.store_only is None else features[:self.store_only]
        return [self._store_feature(project_id, f) for f in stored]

    def delete_features(self, project_id, aligned_feature_ids):
        self._log('delete_features')
        if self.failing_deletes:
            self.failing_deletes -= 1
            raise ServiceError("DELETE /aligned-features failed with HTTP 500", status_code=500,
                               payload={'message': 'Database locked'})
        ids = set(aligned_feature_ids)
        self.features[project_id] = [f for f in self.features[project_id]
                                     if f['alignedFeatureId'] not in ids]

    # Jobs

    def _job_payload(self, job):
        return {k: copy.deepcopy(v) for k, v in job.items() if not k.startswith('_')}

    def submit_job(self, project_id, submission):
        self._log('submit_job')
        job_id = str(next(self._ids))
        self.last_submission = copy.deepcopy(submission)
        tools = [k for k in submission if k.endswith('Params')]
        self.jobs[project_id][job_id] = {
            'id': job_id,
            'command': ' '.join(tools),
            'affectedAlignedFeatureIds': list(submission['alignedFeatureIds']),
            'progress': {'state': 'WAITING', 'currentProgress': 0,
                         'maxProgress': len(submission['alignedFeatureIds'])},
            '_polls': 0,
            '_tools': tools,
        }
        return self._job_payload(self.jobs[project_id][job_id])

    def get_job(self, project_id, job_id):
        self._log('get_job')
        job = self.jobs[project_id][job_id]
        progress = job['progress']
        if progress['state'] in ('WAITING', 'RUNNING'):
            job['_polls'] += 1
            if job['_polls'] >= self.polls_until_done:
                if self.fail_jobs:
                    progress['state'] = 'FAILED'
                    progress['errorMessage'] = 'Out of memory'
                else:
                    progress['state'] = 'DONE'
                    progress['currentProgress'] = progress['maxProgress']
                    for aligned_id in job['affectedAlignedFeatureIds']:
                        self.computed.setdefault((project_id, aligned_id), set()).update(job['_tools'])
            else:
                progress['state'] = 'RUNNING'
        return self._job_payload(job)

    def list_jobs(self, project_id):
        self._log('list_jobs')
        return [self._job_payload(j) for j in self.jobs[project_id].values()]

    def delete_job(self, project_id, job_id, cancel_if_running=True, await_deletion=True):
        self._log('delete_job')
        del self.jobs[project_id][job_id]

    # Results

    def _has(self, project_id, aligned_id, tool):
        return tool in self.computed.get((project_id, aligned_id), set())

    def _formula(self, aligned_id, rank):
        return {
            'formulaId': f'{aligned_id}-f{rank}',
            'rank': rank,
            'molecularFormula': f'C{10 + rank}H{12 + rank}O{rank}',
            'adduct': self.ADDUCT,
            'siriusScore': 100.0 - 5 * rank,
            'isotopeScore': 10.0 - rank,
            'treeScore': 90.0 - 5 * rank,
            'zodiacScore': None,
            'numOfExplainedPeaks': 10 - rank,
            'numOfExplainablePeaks': 12,
            'totalExplainedIntensity': 0.9,
        }

    def get_formulas(self, project_id, aligned_id):
        self._log('get_formulas')
        if not self._has(project_id, aligned_id, 'formulaIdParams'):
            return []
        # Deliberately not in rank order
        return [self._formula(aligned_id, r) for r in range(self.n_formulas, 0, -1)]

    def _formula_rank(self, formula_id):
        return int(formula_id.rsplit('-f', 1)[1])

    def _structures(self, formula_id, prefix):
        formula_rank = self._formula_rank(formula_id)
        return [{
            'rank': k,
            'inchiKey': f'{prefix}KEY{formula_rank}{k}',
            'smiles': 'C' * (k + 1) + 'O',
            'structureName': f'{prefix} structure {formula_rank}.{k}',
            'csiScore': -10.0 * k - formula_rank,
            'tanimotoSimilarity': 0.9 - 0.1 * k,
            'xlogP': 1.5,
            'confidenceExactMatch': 0.8 / formula_rank if k == 1 else None,
            'confidenceApproxMatch': 0.9 / formula_rank if k == 1 else None,
        } for k in (3, 1, 2)]

    def get_db_structures(self, project_id, aligned_id, formula_id):
        self._log('get_db_structures')
        if not self._has(project_id, aligned_id, 'structureDbSearchParams'):
            return []
        return self._structures(formula_id, 'DB')

    def get_denovo_structures(self, project_id, aligned_id, formula_id):
        self._log('get_denovo_structures')
        if not self._has(project_id, aligned_id, 'msNovelistParams'):
            return []
        return self._structures(formula_id, 'DENOVO')

    def get_compound_classes(self, project_id, aligned_id, formula_id):
        self._log('get_compound_classes')
        if not self._has(project_id, aligned_id, 'canopusParams'):
            raise self._not_found('compound-classes')
        return {
            'npcPathway': {'name': 'Fatty acids', 'probability': 0.95},
            'npcSuperclass': {'name': 'Fatty esters', 'probability': 0.8},
            'npcClass': {'name': 'Wax monoesters', 'probability': 0.6},
            'classyFireMostSpecific': {'name': 'Fatty acid esters', 'probability': 0.7},
            'classyFireLineage': [{'name': 'Organic compounds'}, {'name': 'Lipids and lipid-like molecules'}],
        }

    def get_fragtree(self, project_id, aligned_id, formula_id):
        self._log('get_fragtree')
        if not self._has(project_id, aligned_id, 'formulaIdParams'):
            raise self._not_found('fragtree')
        return {
            'fragments': [
                {'fragmentId': 0, 'molecularFormula': 'C11H13O', 'adduct': self.ADDUCT,
                 'mz': 161.1, 'intensity': 1.0, 'massDeviationPpm': 1.2, 'score': 3.0},
                {'fragmentId': 1, 'molecularFormula': 'C10H13', 'adduct': self.ADDUCT,
                 'mz': 133.1, 'intensity': 0.4, 'massDeviationPpm': -0.8, 'score': 1.5},
            ],
            'losses': [{'sourceFragmentIdx': 0, 'targetFragmentIdx': 1, 'molecularFormula': 'CO'}],
        }

    def get_spectral_matches(self, project_id, aligned_id):
        self._log('get_spectral_matches')
        if not self._has(project_id, aligned_id, 'spectraSearchParams'):
            return []
        top = self._formula(aligned_id, 1)
        second = self._formula(aligned_id, 2)
        return [
            {'rank': 2, 'similarity': 0.81, 'sharedPeaks': 8, 'name': 'Reference B',
             'molecularFormula': second['molecularFormula'], 'adduct': self.ADDUCT, 'dbName': 'BIO'},
            {'rank': 1, 'similarity': 0.95, 'sharedPeaks': 12, 'name': 'Reference A',
             'molecularFormula': top['molecularFormula'], 'adduct': self.ADDUCT, 'dbName': 'BIO'},
            {'rank': 3, 'similarity': 0.77, 'sharedPeaks': 6, 'name': 'Reference C',
             'molecularFormula': 'C99H99', 'adduct': self.ADDUCT, 'dbName': 'BIO'},
        ]

    # Searchable databases

    def list_databases(self):
        self._log('list_databases')
        return copy.deepcopy(self.databases)

    def create_database(self, database_id, parameters=None):
        self._log('create_database')
        db = dict(parameters or {}, databaseId=database_id, customDb=True, searchable=True)
        self.databases.append(db)
        return db

    def remove_database(self, database_id, delete=False):
        self._log('remove_database')
        self.databases = [d for d in self.databases if d['databaseId'] != database_id]


@pytest.fixture
def fake_client():
    """Fresh in-memory SIRIUS service."""
    return FakeSiriusClient()


@pytest.fixture
def config(tmp_path):
    """Quiet configuration without polling delays."""
    return SiriusConfig(
        verbose=False,
        poll_interval=0.0,
        max_poll_interval=0.0,
        project_dir=str(tmp_path),
    )


@pytest.fixture
def session(fake_client, tmp_path):
    """Session bound to an empty project on the fake service."""
    return open_project(fake_client, 'test_project', path=tmp_path / 'test_project.sirius', verbose=False)


@pytest.fixture
def chrom_peak_ms1():
    """Two chromatographic peaks CP1 and CP2, one MS1 spectrum each."""
    return pd.DataFrame({
        'chrom_peak_id': ['CP1', 'CP2'],
        'chrom_peak_mz': [181.0707, 255.2330],
        'chrom_peak_rtmin': [60.0, 120.0],
        'chrom_peak_rtmax': [70.0, 130.0],
        'chrom_peak_rt': [65.0, 125.0],
        'polarity': [0, -1],
        'ms_level': [1, 1],
        'scan_index': [10, 20],
        'precursor_mz': [np.nan, np.nan],
        'collision_energy': [np.nan, np.nan],
        'spectrum_mz_vals': [[181.0707, 182.0740, 183.0775], [255.2330, 256.2363]],
        'spectrum_intensity_vals': [[1000.0, 110.0, 8.0], [5000.0, 850.0]],
    })


@pytest.fixture
def chrom_peak_ms2():
    """One MS2 spectrum per chromatographic peak."""
    return pd.DataFrame({
        'chrom_peak_id': ['CP1', 'CP2'],
        'ms_level': [2, 2],
        'scan_index': [11, 21],
        'precursor_mz': [181.0707, 255.2330],
        'collision_energy': [0.0, 20.0],
        'spectrum_mz_vals': [[89.0244, 119.0350, 163.0601], [59.0139, 211.2430]],
        'spectrum_intensity_vals': [[300.0, 120.0, 1000.0], [40.0, 900.0]],
    })


@pytest.fixture
def feature_ms1():
    """Three aligned features with integer ids; feature 1 has two MS1 spectra."""
    return pd.DataFrame({
        'feature_id': [1, 1, 2, 3],
        'feature_mzmed': [301.1, 301.1, 415.2, 520.3],
        'feature_rtmin': [100.0, 100.0, 200.0, 300.0],
        'feature_rtmax': [110.0, 110.0, 210.0, np.nan],
        'feature_rtmed': [105.0, 105.0, 205.0, 305.0],
        'polarity': [1, 1, 1, 1],
        'ms_level': [1, 1, 1, 1],
        'scan_index': [1, 2, 3, 4],
        'precursor_mz': [np.nan] * 4,
        'collision_energy': [np.nan] * 4,
        'spectrum_mz_vals': [[301.1], [301.1, 302.1], [415.2], [520.3]],
        'spectrum_intensity_vals': [[10.0], [11.0, 2.0], [12.0], [13.0]],
    })


@pytest.fixture
def feature_ms2():
    return pd.DataFrame({
        'feature_id': [1, 2, 2, 3],
        'ms_level': [2, 2, 2, 2],
        'scan_index': [5, 6, 7, 8],
        'precursor_mz': [301.1, 415.2, 415.2, 520.3],
        'collision_energy': [20.0, 20.0, 40.0, np.nan],
        'spectrum_mz_vals': [[150.0, 200.0], [100.0], [120.0, 130.0], [250.0]],
        'spectrum_intensity_vals': [[5.0, 7.0], [3.0], [2.0, 1.0], [9.0]],
    })


@pytest.fixture
def spectra_id_ms1():
    """Manually paired single scans without retention time window."""
    return pd.DataFrame({
        'spectra_id': ['S1'],
        'spectra_mzmed': [199.17],
        'polarity': [-1],
        'ms_level': [1],
        'scan_index': [100],
        'precursor_mz': [np.nan],
        'collision_energy': [np.nan],
        'spectrum_mz_vals': [[199.17]],
        'spectrum_intensity_vals': [[100.0]],
    })


@pytest.fixture
def spectra_id_ms2():
    return pd.DataFrame({
        'spectra_id': ['S1'],
        'ms_level': [2],
        'scan_index': [101],
        'precursor_mz': [199.17],
        'collision_energy': [35.0],
        'spectrum_mz_vals': [[155.18, 181.16]],
        'spectrum_intensity_vals': [[20.0, 80.0]],
    })


@pytest.fixture
def imported_session(session, chrom_peak_ms1, chrom_peak_ms2, config):
    """Session with CP1 and CP2 imported."""
    from siriusbridge.feature_import import FeatureImporter
    return FeatureImporter(config).import_features(session, chrom_peak_ms1, chrom_peak_ms2)
