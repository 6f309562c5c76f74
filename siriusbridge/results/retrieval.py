"""
Retrieval of SIRIUS results per feature and formula candidate.

Use it like this:

from siriusbridge.config import ResultsConfig
from siriusbridge.results import ResultRetriever

retriever = ResultRetriever(ResultsConfig(top_formula=3))
formulas = retriever.results(session, 'formulaId')
structures = retriever.results(session, 'structureDb', features=['CP1'], top_structure=1)
nested = retriever.results(session, 'compoundClass', return_shape='nested')
summary = retriever.summary(session)

"""

from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional

import pandas as pd
from tqdm import tqdm

from ..config.results_config import ResultsConfig, RETURN_SHAPES
from ..errors import ResultKindUnavailable, ServiceError
from .shaping import flatten_results

if TYPE_CHECKING:
    from ..connection.session import SiriusSession

RESULT_KINDS = (
    'formulaId',
    'structureDb',
    'compoundClass',
    'spectralDbMatch',
    'deNovoStructure',
    'fragTree',
)

# Key of the sub-candidate list attached to each formula record
CHILD_KEYS = {
    'formulaId': None,
    'structureDb': 'structures',
    'compoundClass': 'compound_classes',
    'spectralDbMatch': 'spectral_matches',
    'deNovoStructure': 'denovo_structures',
    'fragTree': 'fragments',
}

FORMULA_FIELDS = {
    'rank': 'formula_rank',
    'formulaId': 'formula_id',
    'molecularFormula': 'molecular_formula',
    'adduct': 'adduct',
    'siriusScore': 'sirius_score',
    'zodiacScore': 'zodiac_score',
    'isotopeScore': 'isotope_score',
    'treeScore': 'tree_score',
    'numOfExplainedPeaks': 'n_explained_peaks',
    'numOfExplainablePeaks': 'n_explainable_peaks',
    'totalExplainedIntensity': 'total_explained_intensity',
}

STRUCTURE_FIELDS = {
    'rank': 'structure_rank',
    'structureName': 'structure_name',
    'inchiKey': 'inchikey',
    'smiles': 'smiles',
    'csiScore': 'csi_score',
    'tanimotoSimilarity': 'tanimoto_similarity',
    'mcesDistToTopHit': 'mces_dist_to_top_hit',
    'xlogP': 'xlogp',
    'confidenceExactMatch': 'confidence_exact_match',
    'confidenceApproxMatch': 'confidence_approx_match',
}

SPECTRAL_MATCH_FIELDS = {
    'rank': 'match_rank',
    'similarity': 'similarity',
    'sharedPeaks': 'shared_peaks',
    'name': 'reference_name',
    'inchiKey': 'reference_inchikey',
    'smiles': 'reference_smiles',
    'dbName': 'db_name',
    'dbId': 'db_id',
    'uuid': 'reference_uuid',
}

FRAGMENT_FIELDS = {
    'fragmentId': 'fragment_id',
    'molecularFormula': 'fragment_formula',
    'adduct': 'fragment_adduct',
    'mz': 'fragment_mz',
    'intensity': 'fragment_intensity',
    'massDeviationPpm': 'mass_deviation_ppm',
    'score': 'fragment_score',
}

# NPC and ClassyFire levels reported per formula candidate
COMPOUND_CLASS_LEVELS = {
    'npcPathway': 'npc_pathway',
    'npcSuperclass': 'npc_superclass',
    'npcClass': 'npc_class',
    'classyFireMostSpecific': 'classyfire_most_specific',
    'classyFireLevel5': 'classyfire_level5',
}


def _pick(payload: Dict, field_map: Dict[str, str]) -> Dict:
    return {new: payload.get(old) for old, new in field_map.items()}


def _ranked(payloads: List[Dict], limit: Optional[int]) -> List[Dict]:
    """Sort by service rank (input order when absent) and keep the top ``limit``."""
    ranked = sorted(enumerate(payloads), key=lambda p: (p[1].get('rank') or p[0] + 1, p[0]))
    ranked = [dict(p, rank=p.get('rank') or i + 1) for i, p in ranked]
    return ranked if limit is None else ranked[:limit]


def _compound_class_record(payload: Dict) -> Dict:
    record = {}
    for key, column in COMPOUND_CLASS_LEVELS.items():
        level = payload.get(key) or {}
        record[column] = level.get('name')
        record[f'{column}_probability'] = level.get('probability')
    lineage = payload.get('classyFireLineage') or []
    record['classyfire_lineage'] = '; '.join(c.get('name', '') for c in lineage) or None
    return record


class ResultRetriever:
    """Fetches results of one kind and shapes them as a table or nested dict."""

    def __init__(self, config: Optional[ResultsConfig] = None):
        self.config = config or ResultsConfig()

        # Per-formula sub-candidate fetchers
        self._formula_fetchers: Dict[str, Callable] = {
            'structureDb': self._db_structures,
            'deNovoStructure': self._denovo_structures,
            'compoundClass': self._compound_classes,
            'fragTree': self._fragments,
        }

    def results(self, session: 'SiriusSession', result_kind: str,
                features: Optional[Iterable] = None,
                top_formula: Optional[int] = None,
                top_structure: Optional[int] = None,
                top_spectral_matches: Optional[int] = None,
                return_shape: Optional[str] = None):
        """
        Retrieve results of one kind.

        Args:
            session: Active session
            result_kind: One of RESULT_KINDS
            features: Caller feature ids; every mapped feature if None
            top_formula: Formula candidates kept per feature
            top_structure: Structure candidates kept per formula
            top_spectral_matches: Spectral matches kept per formula
            return_shape: 'table' for a DataFrame, 'nested' for a dict keyed by feature id

        Returns:
            DataFrame or nested dict, depending on return_shape

        Raises:
            ValueError: unknown result kind or return shape
            KeyError: feature ids not part of the project
            ResultKindUnavailable: nothing computed for the requested features
        """
        if result_kind not in RESULT_KINDS:
            raise ValueError(f"result_kind must be one of {RESULT_KINDS}, got '{result_kind}'")
        return_shape = return_shape or self.config.return_shape
        if return_shape not in RETURN_SHAPES:
            raise ValueError(f"return_shape must be one of {RETURN_SHAPES}, got '{return_shape}'")

        limits = {
            'formula': self.config.top_formula if top_formula is None else top_formula,
            'structure': self.config.top_structure if top_structure is None else top_structure,
            'spectral': self.config.top_spectral_matches if top_spectral_matches is None else top_spectral_matches,
        }

        if features is None:
            if result_kind == 'fragTree' and self.config.verbose:
                print("Fetching fragmentation trees for all features; "
                      "this is slow, consider passing an explicit feature subset")
            features = list(session.feature_map)
        elif isinstance(features, str):
            features = [features]
        features = [str(f) for f in features]
        aligned_ids = session.feature_map.resolve(features)

        nested = {}
        for feature_id, aligned_id in tqdm(zip(features, aligned_ids), total=len(features),
                                           desc=f"Fetching {result_kind} results", unit='feature',
                                           disable=not self.config.verbose):
            formulas = self._feature_results(session, aligned_id, result_kind, limits)
            if formulas:
                nested[feature_id] = {'aligned_feature_id': aligned_id, 'formulas': formulas}

        if not nested:
            raise ResultKindUnavailable(result_kind, features)

        if return_shape == 'nested':
            return nested
        return flatten_results(nested, CHILD_KEYS[result_kind])

    def _feature_results(self, session: 'SiriusSession', aligned_id: str,
                         result_kind: str, limits: Dict[str, Optional[int]]) -> List[Dict]:
        payloads = _ranked(session.client.get_formulas(session.project_id, aligned_id), limits['formula'])
        formulas = [_pick(p, FORMULA_FIELDS) for p in payloads]
        child_key = CHILD_KEYS[result_kind]
        if child_key is None:
            return formulas

        if result_kind == 'spectralDbMatch':
            self._attach_spectral_matches(session, aligned_id, formulas, payloads, limits['spectral'])
        else:
            fetch = self._formula_fetchers[result_kind]
            for formula in formulas:
                formula[child_key] = fetch(session, aligned_id, formula['formula_id'], limits['structure'])

        return [f for f in formulas if f[child_key]]

    def _fetch_optional(self, fetch: Callable, *args):
        """Call a per-formula endpoint; a 404 means nothing was computed."""
        try:
            return fetch(*args)
        except ServiceError as e:
            if e.status_code == 404:
                return None
            raise

    def _structures(self, payloads: Optional[List[Dict]], formula_id: str,
                    limit: Optional[int]) -> List[Dict]:
        return [dict(_pick(p, STRUCTURE_FIELDS), formula_id=formula_id)
                for p in _ranked(payloads or [], limit)]

    def _db_structures(self, session: 'SiriusSession', aligned_id: str, formula_id: str,
                       limit: Optional[int]) -> List[Dict]:
        payloads = self._fetch_optional(session.client.get_db_structures,
                                        session.project_id, aligned_id, formula_id)
        return self._structures(payloads, formula_id, limit)

    def _denovo_structures(self, session: 'SiriusSession', aligned_id: str, formula_id: str,
                           limit: Optional[int]) -> List[Dict]:
        payloads = self._fetch_optional(session.client.get_denovo_structures,
                                        session.project_id, aligned_id, formula_id)
        return self._structures(payloads, formula_id, limit)

    def _compound_classes(self, session: 'SiriusSession', aligned_id: str, formula_id: str,
                          limit: Optional[int]) -> List[Dict]:
        payload = self._fetch_optional(session.client.get_compound_classes,
                                       session.project_id, aligned_id, formula_id)
        if not payload:
            return []
        return [dict(_compound_class_record(payload), formula_id=formula_id)]

    def _fragments(self, session: 'SiriusSession', aligned_id: str, formula_id: str,
                   limit: Optional[int]) -> List[Dict]:
        tree = self._fetch_optional(session.client.get_fragtree,
                                    session.project_id, aligned_id, formula_id)
        if not tree:
            return []
        return [dict(_pick(f, FRAGMENT_FIELDS), formula_id=formula_id)
                for f in tree.get('fragments') or []]

    def _attach_spectral_matches(self, session: 'SiriusSession', aligned_id: str,
                                 formulas: List[Dict], payloads: List[Dict],
                                 limit: Optional[int]) -> None:
        """
        Spectral matches are computed per feature; each is attached to the
        formula candidate with the same molecular formula and adduct. Matches
        without such a candidate among the kept formulas are dropped.
        """
        by_formula = {(p.get('molecularFormula'), p.get('adduct')): f
                      for p, f in zip(payloads, formulas)}
        for formula in formulas:
            formula['spectral_matches'] = []

        matches = session.client.get_spectral_matches(session.project_id, aligned_id)
        for match in _ranked(matches, None):
            formula = by_formula.get((match.get('molecularFormula'), match.get('adduct')))
            if formula is None:
                continue
            if limit is not None and len(formula['spectral_matches']) >= limit:
                continue
            formula['spectral_matches'].append(
                dict(_pick(match, SPECTRAL_MATCH_FIELDS), formula_id=formula['formula_id'])
            )

    def summary(self, session: 'SiriusSession', features: Optional[Iterable] = None) -> pd.DataFrame:
        """
        One row per feature with the top candidate of every available kind.

        Kinds without computed results are skipped. Fragmentation trees are
        not part of the summary.

        Returns:
            DataFrame with feature_id and aligned_feature_id first
        """
        if features is None:
            features = list(session.feature_map)
        elif isinstance(features, str):
            features = [features]
        features = [str(f) for f in features]

        rows = {f: {'feature_id': f, 'aligned_feature_id': session.feature_map.get(f)}
                for f in features}

        picks = {
            'formulaId': (None, 'formula_rank', False, {
                'molecular_formula': 'molecular_formula',
                'adduct': 'adduct',
                'sirius_score': 'sirius_score',
                'zodiac_score': 'zodiac_score',
            }),
            'structureDb': ('structures', 'csi_score', True, {
                'structure_name': 'structure_name',
                'smiles': 'structure_smiles',
                'inchikey': 'structure_inchikey',
                'csi_score': 'structure_csi_score',
                'confidence_exact_match': 'structure_confidence_exact',
                'confidence_approx_match': 'structure_confidence_approx',
            }),
            'compoundClass': ('compound_classes', 'formula_rank', False, {
                'npc_pathway': 'npc_pathway',
                'npc_pathway_probability': 'npc_pathway_probability',
                'npc_superclass': 'npc_superclass',
                'npc_superclass_probability': 'npc_superclass_probability',
                'npc_class': 'npc_class',
                'npc_class_probability': 'npc_class_probability',
                'classyfire_most_specific': 'classyfire_most_specific',
                'classyfire_most_specific_probability': 'classyfire_most_specific_probability',
            }),
            'spectralDbMatch': ('spectral_matches', 'similarity', True, {
                'reference_name': 'spectral_match_name',
                'reference_smiles': 'spectral_match_smiles',
                'similarity': 'spectral_match_similarity',
                'shared_peaks': 'spectral_match_shared_peaks',
            }),
            'deNovoStructure': ('denovo_structures', 'csi_score', True, {
                'smiles': 'denovo_smiles',
                'csi_score': 'denovo_csi_score',
            }),
        }

        for kind, (child_key, score_col, higher_is_better, columns) in picks.items():
            try:
                table = self.results(session, kind, features=features, return_shape='table')
            except ResultKindUnavailable:
                if self.config.verbose:
                    print(f"No {kind} results, skipping in summary")
                continue
            table = table.sort_values(score_col, ascending=not higher_is_better, kind='stable')
            best = table.drop_duplicates('feature_id', keep='first')
            for record in best.to_dict('records'):
                rows[record['feature_id']].update({new: record.get(old) for old, new in columns.items()})

        return pd.DataFrame(list(rows.values()))
