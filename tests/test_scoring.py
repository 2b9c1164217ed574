"""
Tests for royalty share and payment arithmetic.

Tests cover:
- Weighted share formula and truncation
- Zero metrics
- Payment against the pool
- Unclamped shares above the nominal range
"""
from fhe_royalties.models.oracle import MetricsPayload
from fhe_royalties.scoring import RoyaltyScorer


class TestShare:
    """Tests for the 40/35/25 weighted share."""

    def setup_method(self):
        self.scorer = RoyaltyScorer()

    def test_reference_metrics(self):
        """(100, 80, 60) gives floor(8300 / 100) = 83 basis points"""
        breakdown = self.scorer.calculate_share(MetricsPayload(100, 80, 60))
        assert breakdown.compute_hours_points == 4000
        assert breakdown.data_quality_points == 2800
        assert breakdown.model_impact_points == 1500
        assert breakdown.share == 83

    def test_zero_metrics(self):
        assert self.scorer.calculate_share(MetricsPayload(0, 0, 0)).share == 0

    def test_truncates(self):
        # 40 + 35 + 25 = 100 -> 1; 1*40 = 40 -> 0
        assert self.scorer.calculate_share(MetricsPayload(1, 1, 1)).share == 1
        assert self.scorer.calculate_share(MetricsPayload(1, 0, 0)).share == 0
        assert self.scorer.calculate_share(MetricsPayload(3, 0, 0)).share == 1

    def test_full_scale(self):
        assert self.scorer.calculate_share(MetricsPayload(10000, 10000, 10000)).share == 10000

    def test_not_clamped(self):
        assert self.scorer.calculate_share(MetricsPayload(20000, 20000, 20000)).share == 20000


class TestPayment:
    """Tests for payment = pool * share / 10000."""

    def setup_method(self):
        self.scorer = RoyaltyScorer()

    def test_reference_payment(self):
        assert self.scorer.calculate_payment(1000, 83) == 8

    def test_zero_share(self):
        assert self.scorer.calculate_payment(1_000_000, 0) == 0

    def test_empty_pool(self):
        assert self.scorer.calculate_payment(0, 5000) == 0

    def test_full_share_takes_pool(self):
        assert self.scorer.calculate_payment(12345, 10000) == 12345

    def test_truncates(self):
        assert self.scorer.calculate_payment(9999, 1) == 0
        assert self.scorer.calculate_payment(10001, 1) == 1
