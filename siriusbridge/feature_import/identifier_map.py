"""
Mapping between caller feature identifiers and SIRIUS aligned feature ids.

The map is never updated in place. After every import or deletion a new map
is built from the service's current feature list, so it always mirrors the
project exactly.
"""

from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, List, Optional

import pandas as pd


class IdentifierMap(Mapping):
    """Read-only mapping: external feature id -> aligned feature id."""

    def __init__(self, mapping: Optional[Dict[str, str]] = None):
        self._to_service = dict(mapping or {})
        self._to_external = {v: k for k, v in self._to_service.items()}

    def __getitem__(self, external_id: str) -> str:
        return self._to_service[external_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._to_service)

    def __len__(self) -> int:
        return len(self._to_service)

    def __repr__(self) -> str:
        return f"IdentifierMap({len(self)} features)"

    def resolve(self, external_ids: Iterable) -> List[str]:
        """
        Translate caller ids into aligned feature ids, preserving order.

        Raises:
            KeyError: naming every id that is not part of the project.
        """
        external_ids = [str(i) for i in external_ids]
        unknown = [i for i in external_ids if i not in self._to_service]
        if unknown:
            raise KeyError(f"Unknown feature ids: {', '.join(unknown)}")
        return [self._to_service[i] for i in external_ids]

    def external_id(self, aligned_feature_id: str) -> Optional[str]:
        return self._to_external.get(aligned_feature_id)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'feature_id': list(self._to_service.keys()),
            'aligned_feature_id': list(self._to_service.values()),
        })


def build_identifier_map(snapshot: Iterable[Dict]) -> IdentifierMap:
    """
    Build the identifier map from the service's feature list.

    Args:
        snapshot: Aligned feature payloads as returned by the service

    Returns:
        IdentifierMap holding one entry per feature with an external id
    """
    mapping = {}
    for feature in snapshot:
        external_id = feature.get('externalFeatureId')
        if external_id is None:
            continue
        mapping[str(external_id)] = feature['alignedFeatureId']
    return IdentifierMap(mapping)
