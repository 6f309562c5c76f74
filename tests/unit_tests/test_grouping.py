"""Tests for grouping granularity detection."""

import pandas as pd
import pytest

from siriusbridge.errors import UnknownGroupingKey
from siriusbridge.feature_import.grouping import (
    CHROM_PEAK_ID,
    FEATURE_ID,
    SPECTRA_ID,
    detect_grouping_key,
)


class TestDetectGroupingKey:

    def test_chrom_peak_id(self, chrom_peak_ms1):
        assert detect_grouping_key(chrom_peak_ms1) is CHROM_PEAK_ID

    def test_feature_id(self, feature_ms1):
        assert detect_grouping_key(feature_ms1) is FEATURE_ID

    def test_spectra_id(self, spectra_id_ms1):
        assert detect_grouping_key(spectra_id_ms1) is SPECTRA_ID

    def test_priority_order(self):
        """feature_id wins over chrom_peak_id, which wins over spectra_id."""
        both = pd.DataFrame(columns=['spectra_id', 'chrom_peak_id', 'feature_id'])
        assert detect_grouping_key(both) is FEATURE_ID
        assert detect_grouping_key(both.drop(columns='feature_id')) is CHROM_PEAK_ID

    def test_no_grouping_column(self):
        spectra = pd.DataFrame(columns=['ms_level', 'precursor_mz'])

        with pytest.raises(UnknownGroupingKey) as excinfo:
            detect_grouping_key(spectra)

        assert excinfo.value.columns == ['ms_level', 'precursor_mz']
        assert 'feature_id' in str(excinfo.value)
        assert isinstance(excinfo.value, ValueError)


class TestGroupingKey:

    def test_rt_window_variants(self):
        assert FEATURE_ID.has_rt_window
        assert CHROM_PEAK_ID.has_rt_window
        assert not SPECTRA_ID.has_rt_window

    def test_metadata_columns(self):
        assert CHROM_PEAK_ID.metadata_columns == [
            'chrom_peak_id', 'chrom_peak_mz', 'polarity',
            'chrom_peak_rtmin', 'chrom_peak_rtmax', 'chrom_peak_rt',
        ]
        assert SPECTRA_ID.metadata_columns == ['spectra_id', 'spectra_mzmed', 'polarity']
