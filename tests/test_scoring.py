import pytest

from offer_engine.excel.scoring import (
    CandidateFeatures,
    InclusionFeatures,
    analysis_confidence,
    clamp,
    inclusions_list_confidence,
    inclusions_section_confidence,
    months_columns_confidence,
    months_rows_confidence,
    overall_confidence,
    pricing_matrix_confidence,
    score,
)


class TestCandidateScores:
    def test_months_rows(self):
        f = CandidateFeatures(matches=3, has_headers=True, has_types=True)
        assert months_rows_confidence(f) == pytest.approx(0.75)
        assert score("months-rows", f) == months_rows_confidence(f)

    def test_months_rows_saturates(self):
        f = CandidateFeatures(matches=100, has_headers=True, has_types=True)
        assert months_rows_confidence(f) == 1.0
        assert months_rows_confidence(CandidateFeatures(matches=100)) == pytest.approx(0.9)

    def test_months_columns(self):
        f = CandidateFeatures(matches=4, has_row_labels=True)
        assert months_columns_confidence(f) == pytest.approx(0.92)

    def test_pricing_matrix(self):
        assert pricing_matrix_confidence(CandidateFeatures(matches=3)) == pytest.approx(0.44)
        f = CandidateFeatures(matches=20, has_headers=True, has_row_labels=True)
        assert pricing_matrix_confidence(f) == 1.0

    def test_inclusions_list(self):
        f = CandidateFeatures(matches=3, structured=True)
        assert inclusions_list_confidence(f) == pytest.approx(0.65)

    def test_unknown_family(self):
        with pytest.raises(KeyError):
            score("bogus", CandidateFeatures(matches=1))


class TestAggregates:
    def test_overall_is_weighted_mean(self):
        result = overall_confidence({"months-rows": 0.75, "inclusions-list": 0.65})
        assert result == pytest.approx((0.4 * 0.75 + 0.2 * 0.65) / 0.6)

    def test_overall_empty(self):
        assert overall_confidence({}) == 0.0

    def test_clamp(self):
        assert clamp(1.7) == 1.0
        assert clamp(-0.2) == 0.0
        assert clamp(0.4) == 0.4

    def test_analysis_confidence(self):
        assert analysis_confidence(0.0, 0.0, False, False) == 0.0
        assert analysis_confidence(1.0, 1.0, True, True) == pytest.approx(0.91)
        assert analysis_confidence(0.5, 0.5, True, False) == pytest.approx(0.1 + 0.2 + 0.24)


class TestInclusionsSectionConfidence:
    def test_minimum(self):
        f = InclusionFeatures(False, False, 0, "plain-text", 5, False)
        assert inclusions_section_confidence(f) == pytest.approx(0.3)

    def test_marker_discovery_and_mixed_format(self):
        f = InclusionFeatures(False, True, 3, "mixed", 10, False)
        assert inclusions_section_confidence(f) == pytest.approx(0.3 + 0.2 + 0.15 + 0.05)

    def test_saturates(self):
        f = InclusionFeatures(True, False, 8, "bullet-points", 40, True)
        assert inclusions_section_confidence(f) == 1.0
