"""
Trust score services package.

- scoring: pure factor and score formulas
- factor_collector: gathers raw behavioural counts
- score_calculator: computes a user's bounded score
- trust_score_service: persists score transitions and history
"""

from rewards_engine.services.trust.factor_collector import TrustFactorCollector
from rewards_engine.services.trust.score_calculator import TrustScoreCalculator
from rewards_engine.services.trust.scoring import (
    TrustFactor,
    TrustScoreCalculation,
    calculate_decay,
    compute_trust_score,
)
from rewards_engine.services.trust.trust_score_service import TrustScoreService

__all__ = [
    "TrustFactor",
    "TrustScoreCalculation",
    "TrustFactorCollector",
    "TrustScoreCalculator",
    "TrustScoreService",
    "calculate_decay",
    "compute_trust_score",
]
