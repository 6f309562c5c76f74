"""
Presentation transforms over retrieved result records.

Results are always built nested:

    {feature_id: {'aligned_feature_id': ..., 'formulas': [formula, ...]}}

where each formula record may carry a list of sub-candidates under a
kind-specific key ('structures', 'spectral_matches', ...). The table form is
derived from that structure and never alters values.
"""

from typing import Dict, Optional

import pandas as pd


def flatten_results(nested: Dict[str, Dict], child_key: Optional[str] = None) -> pd.DataFrame:
    """
    One row per leaf candidate, feature and formula columns repeated.

    Args:
        nested: Results keyed by feature id
        child_key: Key of the sub-candidate lists; None when formulas are the leaves

    Returns:
        DataFrame with the id columns first, then formula columns, then
        sub-candidate columns
    """
    rows = []
    for feature_id, feature in nested.items():
        ids = {'feature_id': feature_id, 'aligned_feature_id': feature['aligned_feature_id']}
        for formula in feature['formulas']:
            formula_cols = {k: v for k, v in formula.items() if k != child_key}
            if child_key is None:
                rows.append({**ids, **formula_cols})
                continue
            for child in formula.get(child_key, []):
                rows.append({**ids, **formula_cols, **child})

    return pd.DataFrame(rows)

