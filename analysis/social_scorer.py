# analysis/social_scorer.py

import logging
from typing import List, Optional

from analysis.models import (
    ComponentScoreResult, EnhancedSocialMetrics, LegacySocialMetrics, SocialMetrics,
)
from data.processors.normalizer import (
    Direction, ScoreAdjustment, build_result, ladder, note, rule,
)
from utils.constants import BASE_SCORE, DataQuality, FlagKind
from utils.helpers import format_compact, round_score

logger = logging.getLogger(__name__)

SENTIMENT_DELTAS = {"bullish": 0.5, "bearish": -0.5}

TWITTER_FOLLOWER_LADDER = ladder(
    "twitter_followers",
    [
        (100_000, 0.0, "Strong Twitter presence ({count} followers)"),
        (10_000, 0.0, "Growing Twitter presence ({count} followers)"),
    ],
    fallback=(0.0, "Small Twitter following ({count} followers)"),
)

ALT_RANK_LADDER = ladder(
    "alt_rank",
    [
        (50, 1.0, "Top social rank (#{value})"),
        (150, 0.5, "Strong social rank (#{value})"),
        (500, 0.0, None),
        (1500, -0.5, "Weak social rank (#{value})"),
    ],
    fallback=(-1.0, "Very low social rank (#{value})", FlagKind.WARNING),
    direction=Direction.LOWER_IS_BETTER,
    inclusive=True,
)

SOCIAL_VOLUME_LADDER = ladder(
    "social_volume",
    [
        (50_000, 0.5, "High social volume ({value:,} mentions)"),
        (10_000, 0.25, "Healthy social volume ({value:,} mentions)"),
        (1_000, 0.0, None),
    ],
    fallback=(-0.25, "Low social volume ({value:,} mentions)"),
    inclusive=True,
)


class SocialScorer:
    """
    Scores social presence.

    Enhanced metrics (real platform data) and legacy metrics (galaxy-score
    shape, usually simulated) are distinct types; the scorer dispatches on
    the type, never on the data_source text.
    """

    def score(self, metrics: Optional[SocialMetrics]) -> ComponentScoreResult:
        if isinstance(metrics, EnhancedSocialMetrics):
            return self._score_enhanced(metrics)
        if isinstance(metrics, LegacySocialMetrics):
            return self._score_legacy(metrics)
        return build_result(
            [note("No social data available")],
            details={'data_source': None},
            data_quality=DataQuality.SIMULATED.value,
        )

    def _score_enhanced(self, metrics: EnhancedSocialMetrics) -> ComponentScoreResult:
        base = round_score(metrics.overall_score / 10)
        adjustments: List[Optional[ScoreAdjustment]] = [
            rule("sentiment", metrics.sentiment in SENTIMENT_DELTAS,
                 SENTIMENT_DELTAS.get(metrics.sentiment, 0.0),
                 f"{metrics.sentiment.capitalize()} community sentiment"),
        ]

        twitter = metrics.twitter or {}
        if twitter:
            followers = twitter.get('followers_count') or 0
            adjustments.append(
                TWITTER_FOLLOWER_LADDER.evaluate(followers, count=format_compact(followers))
            )
            adjustments.append(rule("twitter_verified", bool(twitter.get('verified')), 0.0,
                                    "Verified Twitter account"))

        reddit = metrics.reddit or {}
        subscribers = reddit.get('subscribers') or 0
        adjustments.append(rule("reddit", subscribers > 100_000, 0.0,
                                f"Large Reddit community ({format_compact(subscribers)} subscribers)"))

        github = metrics.github or {}
        if github:
            stars = github.get('stars') or 0
            days_since = github.get('days_since_last_commit')
            adjustments.append(rule("github_stars", stars > 1000, 0.0,
                                    f"Popular repository ({format_compact(stars)} stars)"))
            if days_since is not None:
                adjustments.append(rule("github_recency", days_since <= 7, 0.0,
                                        "Active development (commit in the last week)"))
                adjustments.append(rule("github_recency", days_since > 90, 0.0,
                                        f"Stale repository ({days_since} days since last commit)",
                                        FlagKind.WARNING))

        adjustments.append(note(f"Data confidence: {metrics.confidence} "
                                f"({len(metrics.sources)} source(s))"))

        details = {
            'data_source': metrics.data_source,
            'community_score': metrics.community_score,
            'engagement_score': metrics.engagement_score,
            'developer_score': metrics.developer_score,
            'blended_score': round_score(metrics.overall_score),
            'sentiment': metrics.sentiment,
            'confidence': metrics.confidence,
            'sources': list(metrics.sources),
        }
        return build_result(adjustments, details=details,
                            data_quality=DataQuality.REAL.value, base=base)

    def _score_legacy(self, metrics: LegacySocialMetrics) -> ComponentScoreResult:
        galaxy_delta = max(-2.5, min(2.5, (metrics.galaxy_score - 50) / 50 * 2.5))
        adjustments = [
            ScoreAdjustment(galaxy_delta, f"Galaxy score {metrics.galaxy_score:.0f}/100",
                            rule="galaxy_score"),
            ALT_RANK_LADDER.evaluate(metrics.alt_rank),
            rule("sentiment", metrics.sentiment in SENTIMENT_DELTAS,
                 SENTIMENT_DELTAS.get(metrics.sentiment, 0.0),
                 f"{metrics.sentiment.capitalize()} sentiment"),
            SOCIAL_VOLUME_LADDER.evaluate(metrics.social_volume),
        ]

        details = {
            'data_source': metrics.data_source,
            'galaxy_score': metrics.galaxy_score,
            'alt_rank': metrics.alt_rank,
            'sentiment': metrics.sentiment,
            'social_volume': metrics.social_volume,
        }
        return build_result(adjustments, details=details,
                            data_quality=DataQuality.SIMULATED.value, base=BASE_SCORE)
