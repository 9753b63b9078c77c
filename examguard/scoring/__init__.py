"""Scoring modules"""

from .risk_scorer import RiskAssessment, RiskScorer, WeightedRiskScorer
from .plagiarism import PlagiarismMatcher, StoredCheckMatcher

__all__ = [
    "RiskAssessment",
    "RiskScorer",
    "WeightedRiskScorer",
    "PlagiarismMatcher",
    "StoredCheckMatcher",
]
