"""
Risk Scorer - Computes a cheating-risk score from a session's violation log

Formula:
    violation_risk  = min(100, sum(severity_weight) * VIOLATION_POINT_VALUE)
    tab_switch_risk = min(tab_switches, MAX_TAB_SWITCHES) * 100 / MAX_TAB_SWITCHES
    plagiarism_risk = latest plagiarism score (0-100), when one exists

    cheating_score = round(weighted mean of the present components)

Each component saturates at 100 and the weights are renormalized over the
components that are present, so the result always lies in 0-100 and an
empty violation log with no plagiarism input scores 0.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskAssessment:
    """Result of scoring one session"""
    score: int
    level: str                      # low, moderate, high
    recommended_status: str         # completed, flagged
    threshold: int
    violations_count: int
    tab_switches: int
    plagiarism_score: Optional[int]
    components: Dict[str, float] = field(default_factory=dict)
    severity_breakdown: Dict[str, int] = field(default_factory=dict)

    @property
    def should_flag(self) -> bool:
        return self.recommended_status == "flagged"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level,
            "recommended_status": self.recommended_status,
            "threshold": self.threshold,
            "violations_count": self.violations_count,
            "tab_switches": self.tab_switches,
            "plagiarism_score": self.plagiarism_score,
            "components": self.components,
            "severity_breakdown": self.severity_breakdown,
        }


class RiskScorer:
    """
    Strategy interface for cheating-risk scoring.

    Implementations must be deterministic: the same violations and
    plagiarism score always give the same assessment. The incremental path
    (after each violation) and the final path (at submission) both call
    assess() so they cannot disagree.
    """

    threshold: int = 70

    # Scores below this are "low" risk
    MODERATE_FLOOR = 40

    def assess(self, violations: Iterable[Any], plagiarism_score: Optional[int] = None) -> RiskAssessment:
        raise NotImplementedError

    def risk_level(self, score: int) -> str:
        if score >= self.threshold:
            return "high"
        if score >= min(self.MODERATE_FLOOR, self.threshold):
            return "moderate"
        return "low"


class WeightedRiskScorer(RiskScorer):
    """
    Default scorer: severity-weighted violation points, a normalized
    tab-switch count and the plagiarism score, combined as a weighted mean.
    """

    SEVERITY_WEIGHTS: Dict[str, int] = {"low": 1, "medium": 3, "high": 7}

    COMPONENT_WEIGHTS: Dict[str, float] = {
        "violations": 0.60,
        "tab_switches": 0.15,
        "plagiarism": 0.25,
    }

    VIOLATION_POINT_VALUE = 4.0

    # Tab switches before the tab-switch component maxes out
    MAX_TAB_SWITCHES = 10

    def __init__(
        self,
        severity_weights: Dict[str, int] = None,
        component_weights: Dict[str, float] = None,
        point_value: float = None,
        max_tab_switches: int = None,
        threshold: int = 70
    ):
        self.severity_weights = self.SEVERITY_WEIGHTS.copy()
        if severity_weights:
            self.severity_weights.update(severity_weights)

        self.component_weights = self.COMPONENT_WEIGHTS.copy()
        if component_weights:
            self.component_weights.update(component_weights)

        self.point_value = point_value if point_value is not None else self.VIOLATION_POINT_VALUE
        self.max_tab_switches = max_tab_switches if max_tab_switches is not None else self.MAX_TAB_SWITCHES
        self.threshold = threshold

        self._validate()

    @classmethod
    def from_config(cls, config) -> "WeightedRiskScorer":
        """Build a scorer from a Flask config mapping"""
        return cls(
            severity_weights=config.get("SEVERITY_WEIGHTS"),
            component_weights={
                "violations": config.get("VIOLATION_COMPONENT_WEIGHT", 0.60),
                "tab_switches": config.get("TAB_SWITCH_COMPONENT_WEIGHT", 0.15),
                "plagiarism": config.get("PLAGIARISM_COMPONENT_WEIGHT", 0.25),
            },
            point_value=config.get("VIOLATION_POINT_VALUE"),
            max_tab_switches=config.get("MAX_TAB_SWITCHES"),
            threshold=config.get("FLAG_THRESHOLD", 70),
        )

    def _validate(self):
        weights = self.severity_weights
        if not (0 <= weights["low"] <= weights["medium"] <= weights["high"]):
            raise ValueError(f"Severity weights must be non-negative and monotonic, got {weights}")

        if any(w < 0 for w in self.component_weights.values()):
            raise ValueError(f"Component weights must be non-negative, got {self.component_weights}")

        if self.point_value < 0:
            raise ValueError("Violation point value must be non-negative")

        if self.max_tab_switches < 1:
            raise ValueError("MAX_TAB_SWITCHES must be at least 1")

        if not 0 <= self.threshold <= 100:
            raise ValueError(f"Flag threshold must be within 0-100, got {self.threshold}")

        total = sum(self.component_weights.values())
        if abs(total - 1.0) > 0.01:
            logger.warning(f"Component weights sum to {total}, expected 1.0")

    def assess(self, violations: Iterable[Any], plagiarism_score: Optional[int] = None) -> RiskAssessment:
        """
        Score a session.

        Args:
            violations: Objects with violation_type and severity attributes
            plagiarism_score: Optional 0-100 plagiarism estimate

        Returns:
            RiskAssessment with a score in 0-100
        """
        severities: List[str] = []
        tab_switches = 0
        for violation in violations:
            severities.append(violation.severity)
            if violation.violation_type == "tab_switch":
                tab_switches += 1

        severity_counts = Counter(severities)
        points = sum(self.severity_weights.get(s, 0) * n for s, n in severity_counts.items())

        components = {
            "violations": min(100.0, points * self.point_value),
            "tab_switches": min(tab_switches, self.max_tab_switches) * 100.0 / self.max_tab_switches,
        }
        if plagiarism_score is not None:
            components["plagiarism"] = float(min(100, max(0, plagiarism_score)))

        weight_total = sum(self.component_weights[name] for name in components)
        if weight_total > 0:
            raw = sum(self.component_weights[name] * value for name, value in components.items()) / weight_total
        else:
            raw = 0.0

        score = int(round(raw))
        level = self.risk_level(score)
        recommended = "flagged" if score >= self.threshold else "completed"

        logger.debug(
            f"Risk assessment: points={points} tab_switches={tab_switches} "
            f"plagiarism={plagiarism_score} score={score}"
        )

        return RiskAssessment(
            score=score,
            level=level,
            recommended_status=recommended,
            threshold=self.threshold,
            violations_count=len(severities),
            tab_switches=tab_switches,
            plagiarism_score=plagiarism_score,
            components={name: round(value, 2) for name, value in components.items()},
            severity_breakdown={s: severity_counts.get(s, 0) for s in ("low", "medium", "high")},
        )
