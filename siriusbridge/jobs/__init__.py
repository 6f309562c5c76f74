"""
siriusbridge jobs module.

Builds SIRIUS job submissions from tool parameter groups, submits them and
follows them to completion.
"""

from .parameters import (
    ToolParams,
    SpectraSearchParams,
    FormulaIdParams,
    ZodiacParams,
    FingerprintPredictionParams,
    CanopusParams,
    StructureDbSearchParams,
    MsNovelistParams,
)
from .core import JobStatus, JobHandle, JobOrchestrator

__all__ = [
    'ToolParams',
    'SpectraSearchParams',
    'FormulaIdParams',
    'ZodiacParams',
    'FingerprintPredictionParams',
    'CanopusParams',
    'StructureDbSearchParams',
    'MsNovelistParams',
    'JobStatus',
    'JobHandle',
    'JobOrchestrator',
]
