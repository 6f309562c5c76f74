"""
Parameter groups for the SIRIUS analysis tools.

Each dataclass configures one tool of a job submission. Fields left as None
are not sent, so the service default applies.

Use it like this:

from siriusbridge.jobs.parameters import FormulaIdParams, StructureDbSearchParams

formula = FormulaIdParams(instrument='ORBITRAP', mass_accuracy_ms2_ppm=5.0)
structures = StructureDbSearchParams(structure_search_dbs=['BIO', 'PUBCHEM'])
formula.to_dict()

"""

from dataclasses import dataclass, fields
from typing import ClassVar, Dict, List, Optional


def _camel_case(name: str) -> str:
    head, *tail = name.split('_')
    return head + ''.join(part.capitalize() for part in tail)


@dataclass
class ToolParams:
    """Base class of all tool parameter groups."""

    # Key of the group in the job submission
    payload_key: ClassVar[str] = ''
    # Field names whose service spelling is not plain camelCase
    field_names: ClassVar[Dict[str, str]] = {}

    enabled: bool = True

    def to_dict(self) -> Dict:
        params = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            params[self.field_names.get(f.name, _camel_case(f.name))] = value
        return params


@dataclass
class SpectraSearchParams(ToolParams):
    """Spectral library matching."""

    payload_key: ClassVar[str] = 'spectraSearchParams'
    field_names: ClassVar[Dict[str, str]] = {'spectra_search_dbs': 'spectraSearchDBs'}

    spectra_search_dbs: Optional[List[str]] = None
    peak_deviation_ppm: float = 10.0
    precursor_deviation_ppm: float = 10.0
    scoring: str = 'MODIFIED_COSINE'


@dataclass
class FormulaIdParams(ToolParams):
    """Molecular formula identification (SIRIUS)."""

    payload_key: ClassVar[str] = 'formulaIdParams'
    field_names: ClassVar[Dict[str, str]] = {
        'mass_accuracy_ms2_ppm': 'massAccuracyMS2ppm',
        'formula_search_dbs': 'formulaSearchDBs',
        'isotope_ms2_settings': 'isotopeMs2Settings',
    }

    number_of_candidates: int = 10
    number_of_candidates_per_ionization: int = 1
    instrument: str = 'QTOF'
    mass_accuracy_ms2_ppm: float = 10.0
    isotope_ms2_settings: str = 'IGNORE'
    filter_by_isotope_pattern: bool = True
    perform_bottom_up_search: bool = True
    perform_denovo_below_mz: float = 400.0
    formula_search_dbs: Optional[List[str]] = None
    enforced_formula_constraints: str = 'HCNOP'
    fallback_formula_constraints: str = 'HCNOPFIS'
    detectable_elements: Optional[List[str]] = None


@dataclass
class ZodiacParams(ToolParams):
    """Network-based re-ranking of formula candidates."""

    payload_key: ClassVar[str] = 'zodiacParams'

    considered_candidates_at300_mz: int = 10
    considered_candidates_at800_mz: int = 50
    run_in_two_steps: bool = True


@dataclass
class FingerprintPredictionParams(ToolParams):
    """Molecular fingerprint prediction (CSI:FingerID), needed by CANOPUS and structure search."""

    payload_key: ClassVar[str] = 'fingerprintPredictionParams'

    use_score_threshold: bool = True
    always_predict_high_ref_matches: bool = False


@dataclass
class CanopusParams(ToolParams):
    """Compound class prediction."""

    payload_key: ClassVar[str] = 'canopusParams'


@dataclass
class StructureDbSearchParams(ToolParams):
    """Structure database search (CSI:FingerID)."""

    payload_key: ClassVar[str] = 'structureDbSearchParams'
    field_names: ClassVar[Dict[str, str]] = {'structure_search_dbs': 'structureSearchDBs'}

    structure_search_dbs: Optional[List[str]] = None
    tag_structures_with_lipid_class: bool = True
    expansive_search_confidence_mode: str = 'APPROXIMATE'


@dataclass
class MsNovelistParams(ToolParams):
    """De novo structure prediction."""

    payload_key: ClassVar[str] = 'msNovelistParams'
    field_names: ClassVar[Dict[str, str]] = {
        'number_of_candidates_to_predict': 'numberOfCandidateToPredict'
    }

    number_of_candidates_to_predict: int = 10


# Tools whose results are computed from predicted fingerprints
FINGERPRINT_CONSUMERS = (CanopusParams, StructureDbSearchParams, MsNovelistParams)
