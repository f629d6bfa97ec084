"""
Social Aggregator - turns per-platform social data into 0-100 sub-scores
Community, engagement and developer scores plus a sentiment heuristic
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from analysis.models import EnhancedSocialMetrics

CONFIDENCE_BY_SOURCES = {3: "high", 2: "medium", 1: "low", 0: "none"}


class SocialAggregator:
    """
    Combines Twitter, Reddit and GitHub snapshots.

    Each platform dict is optional. Sub-scores only average over the
    platforms that actually answered.
    """

    def community_score(self, twitter: Optional[Dict], reddit: Optional[Dict]) -> int:
        points = 0.0
        weight = 0

        if twitter:
            followers = twitter.get('followers_count', 0) or 0
            engagement = twitter.get('average_engagement', 0) or 0
            points += min(50, followers / 100_000 * 25) + min(25, engagement / 1000 * 25)
            weight += 50

        if reddit and reddit.get('subscribers'):
            subscribers = reddit.get('subscribers', 0) or 0
            activity_ratio = reddit.get('activity_ratio', 0) or 0
            points += min(30, subscribers / 50_000 * 30) + min(20, activity_ratio * 10)
            weight += 50

        if weight == 0:
            return 0
        return int(min(100, round(points / weight * 100)))

    def engagement_score(self, twitter: Optional[Dict], reddit: Optional[Dict]) -> int:
        scores: List[float] = []

        if twitter and twitter.get('followers_count'):
            rate = twitter.get('average_engagement', 0) / twitter['followers_count'] * 100
            scores.append(min(100, rate * 50))

        if reddit and reddit.get('engagement_rate') is not None:
            scores.append(min(100, reddit['engagement_rate']))

        if not scores:
            return 0
        return int(round(sum(scores) / len(scores)))

    def developer_score(self, github: Optional[Dict]) -> int:
        if not github:
            return 0

        score = min(30, (github.get('stars', 0) or 0) / 1000 * 30)

        days_since = github.get('days_since_last_commit')
        if days_since is not None:
            if days_since < 7:
                score += 40
            elif days_since < 30:
                score += 20

        score += min(20, (github.get('contributors', 0) or 0) / 50 * 20)
        score += min(10, (github.get('commits_last_month', 0) or 0) / 100 * 10)

        return int(round(min(100, score)))

    def sentiment(self, twitter: Optional[Dict], reddit: Optional[Dict]) -> str:
        positive = 0.0
        total = 0.0

        if twitter:
            total += 1.5
            if (twitter.get('mention_growth') or 0) > 10:
                positive += 1
            if (twitter.get('follower_following_ratio') or 0) > 10:
                positive += 0.5

        if reddit:
            total += 1.5
            if (reddit.get('activity_ratio') or 0) > 2:
                positive += 1
            if (reddit.get('engagement_rate') or 0) > 50:
                positive += 0.5

        if total == 0:
            return "neutral"

        ratio = positive / total
        if ratio > 0.7:
            return "bullish"
        if ratio < 0.3:
            return "bearish"
        return "neutral"

    def build(self, twitter: Optional[Dict[str, Any]] = None,
              reddit: Optional[Dict[str, Any]] = None,
              github: Optional[Dict[str, Any]] = None) -> Optional[EnhancedSocialMetrics]:
        """EnhancedSocialMetrics from whichever platforms answered, or None"""
        sources = tuple(
            name for name, data in (('twitter', twitter), ('reddit', reddit), ('github', github))
            if data
        )
        if not sources:
            logger.info("No social platform returned data")
            return None

        metrics = EnhancedSocialMetrics(
            community_score=self.community_score(twitter, reddit),
            engagement_score=self.engagement_score(twitter, reddit),
            developer_score=self.developer_score(github),
            sentiment=self.sentiment(twitter, reddit),
            confidence=CONFIDENCE_BY_SOURCES[len(sources)],
            twitter=twitter,
            reddit=reddit,
            github=github,
            sources=sources,
        )
        logger.debug(
            f"Social aggregate from {sources}: community={metrics.community_score} "
            f"engagement={metrics.engagement_score} developer={metrics.developer_score}"
        )
        return metrics
