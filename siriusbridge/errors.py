"""
Exceptions raised by siriusbridge.

Validation errors derive from ValueError and are raised before any call to
the SIRIUS service. Remote failures derive from ServiceError and carry the
service's diagnostic payload.
"""

from typing import Any, Iterable, Optional


def _join(values: Iterable[Any]) -> str:
    return ', '.join(str(v) for v in values)


class SiriusBridgeError(Exception):
    """Base class for all siriusbridge errors."""


class MissingCounterpartSpectra(SiriusBridgeError, ValueError):
    """MS1 groups without any MS2 spectrum sharing the same key."""

    def __init__(self, keys):
        self.keys = list(keys)
        super().__init__(
            f"The following IDs are unmatched in ms1 and ms2 spectra: {_join(self.keys)}"
        )


class AdductCardinalityMismatch(SiriusBridgeError, ValueError):
    def __init__(self, n_adducts: int, n_features: int):
        self.n_adducts = n_adducts
        self.n_features = n_features
        super().__init__(
            f"The number of adducts must be either 1 or the same as the number of "
            f"features being imported ({n_features}), got {n_adducts}"
        )


class UnknownGroupingKey(SiriusBridgeError, ValueError):
    def __init__(self, columns, candidates):
        self.columns = list(columns)
        self.candidates = list(candidates)
        super().__init__(
            f"None of the grouping columns ({_join(self.candidates)}) are present; "
            f"available columns: {_join(self.columns)}"
        )


class InvalidJobSpecification(SiriusBridgeError, ValueError):
    """Job rejected locally before being submitted."""


class ServiceError(SiriusBridgeError, RuntimeError):
    """A call to the SIRIUS service failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        self.status_code = status_code
        self.payload = payload
        if payload:
            message = f"{message}: {payload}"
        super().__init__(message)


class FeatureUploadFailed(ServiceError):
    def __init__(self, message: str, feature_ids, status_code: Optional[int] = None, payload: Any = None):
        self.feature_ids = list(feature_ids)
        super().__init__(
            f"{message} (features: {_join(self.feature_ids)})",
            status_code=status_code,
            payload=payload,
        )


class ResultKindUnavailable(SiriusBridgeError, LookupError):
    def __init__(self, kind: str, features):
        self.kind = kind
        self.features = list(features)
        super().__init__(
            f"No '{kind}' results have been computed for features: {_join(self.features)}"
        )
