"""
Grouping granularities of imported spectra.

Which granularity applies is decided once from the columns of the MS1 table
and then passed explicitly to the assembler:

    feature_id     grouped/aligned features across samples
    chrom_peak_id  single chromatographic peaks
    spectra_id     manually paired single MS1/MS2 scans
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import pandas as pd

from ..errors import UnknownGroupingKey


@dataclass(frozen=True)
class GroupingKey:
    name: str
    id_column: str
    mz_column: str
    # (start, end, apex) retention time columns, None when not meaningful
    rt_columns: Optional[Tuple[str, str, str]] = None

    @property
    def has_rt_window(self) -> bool:
        return self.rt_columns is not None

    @property
    def metadata_columns(self) -> List[str]:
        columns = [self.id_column, self.mz_column, 'polarity']
        if self.rt_columns:
            columns.extend(self.rt_columns)
        return columns


FEATURE_ID = GroupingKey(
    name='feature_id',
    id_column='feature_id',
    mz_column='feature_mzmed',
    rt_columns=('feature_rtmin', 'feature_rtmax', 'feature_rtmed'),
)

CHROM_PEAK_ID = GroupingKey(
    name='chrom_peak_id',
    id_column='chrom_peak_id',
    mz_column='chrom_peak_mz',
    rt_columns=('chrom_peak_rtmin', 'chrom_peak_rtmax', 'chrom_peak_rt'),
)

SPECTRA_ID = GroupingKey(
    name='spectra_id',
    id_column='spectra_id',
    mz_column='spectra_mzmed',
)

# Detection priority
GROUPING_KEYS = (FEATURE_ID, CHROM_PEAK_ID, SPECTRA_ID)


def detect_grouping_key(spectra: pd.DataFrame) -> GroupingKey:
    """
    Pick the grouping granularity from the columns of a spectra table.

    Raises:
        UnknownGroupingKey: if none of the id columns is present
    """
    for key in GROUPING_KEYS:
        if key.id_column in spectra.columns:
            return key
    raise UnknownGroupingKey(spectra.columns, [k.id_column for k in GROUPING_KEYS])
