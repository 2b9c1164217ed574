"""Royalty share and payment calculation"""
from dataclasses import dataclass

from fhe_royalties.config import (
    BASIS_POINTS,
    COMPUTE_HOURS_WEIGHT,
    DATA_QUALITY_WEIGHT,
    MODEL_IMPACT_WEIGHT,
    WEIGHT_DENOMINATOR,
)
from fhe_royalties.models.oracle import MetricsPayload

@dataclass
class ShareBreakdown:
    """Weighted contribution of each metric to the share"""
    compute_hours_points: int
    data_quality_points: int
    model_impact_points: int
    share: int  # basis points

class RoyaltyScorer:
    """Calculates royalty shares and payments from revealed metrics"""

    def calculate_share(self, metrics: MetricsPayload) -> ShareBreakdown:
        """
        Weighted share in basis points, truncated.

        Not clamped: metrics above 10000 yield a share above the nominal
        0-10000 range.
        """
        compute_hours_points = metrics.compute_hours * COMPUTE_HOURS_WEIGHT
        data_quality_points = metrics.data_quality * DATA_QUALITY_WEIGHT
        model_impact_points = metrics.model_impact * MODEL_IMPACT_WEIGHT

        return ShareBreakdown(
            compute_hours_points=compute_hours_points,
            data_quality_points=data_quality_points,
            model_impact_points=model_impact_points,
            share=(compute_hours_points + data_quality_points + model_impact_points) // WEIGHT_DENOMINATOR
        )

    def calculate_payment(self, pool_balance: int, share: int) -> int:
        """Payment owed from the pool for a share in basis points"""
        return pool_balance * share // BASIS_POINTS
