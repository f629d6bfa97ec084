# analysis/scoring_engine.py

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from analysis.models import ComponentScoreResult
from analysis.onchain_scorer import rate_score
from config.config_manager import ScoringConfig, validate_weight_map
from utils.constants import CLASSIFICATION_DESCRIPTIONS, COMPONENTS, Classification
from utils.errors import ConfigurationError
from utils.helpers import round_score

logger = logging.getLogger(__name__)

RATING_DESCRIPTIONS = {
    "Excellent": ("Outstanding fundamentals", "Fundamentals support a long-term position"),
    "Very Good": ("Strong fundamentals", "Fundamentals support accumulation on weakness"),
    "Good": ("Solid fundamentals", "Reasonable candidate, size positions sensibly"),
    "Above Average": ("Decent fundamentals with gaps", "Watch the weaker components before entering"),
    "Average": ("Moderate fundamentals", "Neutral; wait for clearer signals"),
    "Below Average": ("Weak fundamentals", "Caution; only speculative exposure"),
    "Poor": ("Very weak fundamentals", "Avoid unless there is a specific thesis"),
    "Very Poor": ("Extremely weak fundamentals", "Avoid"),
}

COMPONENT_LABELS = {
    "tokenomics": "Tokenomics",
    "liquidity": "Liquidity",
    "social": "Social presence",
    "onchain": "On-chain activity",
}

STRENGTH_THRESHOLD = 7.0
WEAKNESS_THRESHOLD = 5.0


class ScoringEngine:
    """
    Combines component scores into the overall score and classification.

    Weights and thresholds come from ScoringConfig; they are read-only during
    an analysis and only change through update_weights/update_thresholds.
    """

    def __init__(self, scoring_config: Optional[ScoringConfig] = None):
        self.config = scoring_config or ScoringConfig()

    @property
    def weights(self) -> Dict[str, float]:
        return dict(self.config.weights)

    @staticmethod
    def validate_weights(weights: Mapping[str, float]) -> Dict[str, float]:
        try:
            return validate_weight_map(dict(weights))
        except ValueError as e:
            raise ConfigurationError(f"Invalid scoring weights: {e}") from e

    def update_weights(self, weights: Mapping[str, float]) -> Dict[str, float]:
        """Validate and swap in new weights; on failure the old weights stay"""
        validated = self.validate_weights(weights)
        self.config = self.config.model_copy(update={'weights': validated})
        logger.info(f"Scoring weights updated: {validated}")
        return self.weights

    def update_thresholds(self, green: float, yellow: float) -> None:
        if not 0 <= yellow < green <= 10:
            raise ConfigurationError(
                f"Invalid thresholds green={green} yellow={yellow}: need 0 <= yellow < green <= 10"
            )
        self.config = self.config.model_copy(
            update={'green_threshold': green, 'yellow_threshold': yellow}
        )
        logger.info(f"Classification thresholds updated: green={green} yellow={yellow}")

    def calculate_overall_score(self, scores: Mapping[str, float]) -> float:
        """Weighted sum of the four component scores, rounded to 2 dp"""
        missing = [c for c in COMPONENTS if c not in scores]
        if missing:
            raise ValueError(f"Missing component scores: {missing}")
        weights = self.config.weights
        return round_score(sum(scores[c] * weights[c] for c in COMPONENTS))

    def classify(self, score: float) -> Tuple[str, str]:
        """GREEN / YELLOW / RED and its description"""
        if score >= self.config.green_threshold:
            classification = Classification.GREEN
        elif score >= self.config.yellow_threshold:
            classification = Classification.YELLOW
        else:
            classification = Classification.RED
        return classification.value, CLASSIFICATION_DESCRIPTIONS[classification]

    @staticmethod
    def interpret_score(score: float) -> Dict[str, str]:
        rating = rate_score(score)
        description, recommendation = RATING_DESCRIPTIONS[rating]
        return {
            'rating': rating,
            'description': description,
            'recommendation': recommendation,
        }

    def get_score_breakdown(self, scores: Mapping[str, float]) -> Dict[str, Any]:
        overall = self.calculate_overall_score(scores)
        breakdown: Dict[str, Any] = {
            'overall': {'score': overall, 'interpretation': self.interpret_score(overall)},
        }
        for component in COMPONENTS:
            weight = self.config.weights[component]
            contribution = scores[component] * weight
            breakdown[component] = {
                'score': scores[component],
                'weight': weight,
                'weighted_contribution': round_score(contribution),
                'percentage_of_total': round_score(contribution / overall * 100) if overall else 0.0,
                'interpretation': self.interpret_score(scores[component]),
            }
        return breakdown

    @staticmethod
    def risk_level(overall: float, red_flag_count: int) -> str:
        if overall < 3.5 or red_flag_count >= 3:
            return "VERY HIGH"
        if overall < 5.0 or red_flag_count >= 2:
            return "HIGH"
        if overall < 7.0 or red_flag_count == 1:
            return "MEDIUM"
        return "LOW"

    def build_investment_analysis(self, overall: float, classification: str,
                                  components: Mapping[str, ComponentScoreResult]) -> Dict[str, Any]:
        onchain = components.get('onchain')
        red_flags: List[str] = list(onchain.red_flags) if onchain else []
        warnings: List[str] = list(onchain.warnings) if onchain else []

        strengths = [
            f"{COMPONENT_LABELS[name]} ({result.score:.1f}/10)"
            for name, result in components.items() if result.score >= STRENGTH_THRESHOLD
        ]
        weaknesses = [
            f"{COMPONENT_LABELS[name]} ({result.score:.1f}/10)"
            for name, result in components.items() if result.score < WEAKNESS_THRESHOLD
        ]

        risk = self.risk_level(overall, len(red_flags))
        if classification == Classification.GREEN.value and risk == "LOW":
            recommendation = "Fundamentally sound; suitable for further due diligence"
        elif classification == Classification.RED.value or risk == "VERY HIGH":
            recommendation = "Avoid; fundamentals do not support a position"
        else:
            recommendation = "Proceed with caution; review the weak components"

        summary = (
            f"Overall {overall:.2f}/10 ({classification}), risk {risk}. "
            f"{len(strengths)} strong and {len(weaknesses)} weak component(s)"
        )
        if red_flags:
            summary += f", {len(red_flags)} on-chain red flag(s)"

        return {
            'risk_level': risk,
            'recommendation': recommendation,
            'strengths': strengths,
            'weaknesses': weaknesses,
            'key_risks': red_flags + warnings,
            'summary': summary + ".",
        }
