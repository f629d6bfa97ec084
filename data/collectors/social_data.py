"""
Social Data Collector - Twitter, Reddit and GitHub snapshots for a coin

Each platform client returns a flat dict or None. SocialDataCollector runs
them concurrently and hands the survivors to the SocialAggregator.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from analysis.models import EnhancedSocialMetrics
from data.collectors.base import HttpCollector
from data.processors.social_aggregator import SocialAggregator
from utils.errors import ProviderUnavailableError
from utils.helpers import safe_divide


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


class TwitterCollector(HttpCollector):
    """Twitter API v2 client"""

    provider = "twitter"

    def __init__(self, bearer_token: str, base_url: str = "https://api.twitter.com/2",
                 timeout: float = 10.0, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url, api_key=bearer_token, timeout=timeout, session=session)

    def _headers(self) -> Dict[str, str]:
        return {'Authorization': f'Bearer {self.api_key}'}

    @staticmethod
    def handle_candidates(ticker: str) -> List[str]:
        t = ticker.lower()
        return [t, f"{t}coin", f"{t}protocol", f"{t}network", f"official{t}"]

    async def _find_account(self, ticker: str) -> Optional[Dict[str, Any]]:
        for handle in self.handle_candidates(ticker):
            payload = await self._make_request(
                f'users/by/username/{handle}',
                params={'user.fields': 'public_metrics,verified,created_at'},
            )
            if payload and payload.get('data'):
                return payload['data']
        return None

    async def fetch(self, ticker: str) -> Optional[Dict[str, Any]]:
        account = await self._find_account(ticker)
        if not account:
            logger.info(f"No Twitter account found for {ticker}")
            return None

        metrics = account.get('public_metrics') or {}
        followers = metrics.get('followers_count', 0)

        search = await self._make_request('tweets/search/recent', params={
            'query': f"${ticker.upper()} OR #{ticker.upper()} -is:retweet",
            'max_results': 100,
            'tweet.fields': 'public_metrics,created_at',
        }) or {}
        tweets = search.get('data') or []

        engagements = [
            sum((tw.get('public_metrics') or {}).get(k, 0)
                for k in ('like_count', 'retweet_count', 'reply_count', 'quote_count'))
            for tw in tweets
        ]

        # Mentions in the most recent day against the daily average of the window
        now = datetime.now(timezone.utc)
        created = [_parse_time(tw.get('created_at')) for tw in tweets]
        last_day = sum(1 for c in created if c and now - c <= timedelta(days=1))
        daily_average = len(tweets) / 7 if tweets else 0
        mention_growth = (
            (last_day - daily_average) / daily_average * 100 if daily_average else 0.0
        )

        return {
            'username': account.get('username'),
            'followers_count': followers,
            'following_count': metrics.get('following_count', 0),
            'tweet_count': metrics.get('tweet_count', 0),
            'verified': bool(account.get('verified')),
            'average_engagement': sum(engagements) / len(engagements) if engagements else 0,
            'recent_mentions': len(tweets),
            'mention_growth': round(mention_growth, 2),
            'follower_following_ratio': safe_divide(followers, metrics.get('following_count')) or 0,
        }


class RedditCollector(HttpCollector):
    """Public Reddit JSON endpoints"""

    provider = "reddit"

    def __init__(self, user_agent: str = "CryptoFundamentalAnalyzer/1.0",
                 base_url: str = "https://www.reddit.com", timeout: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url, timeout=timeout, session=session)
        self.user_agent = user_agent

    def _headers(self) -> Dict[str, str]:
        return {'User-Agent': self.user_agent}

    @staticmethod
    def subreddit_candidates(ticker: str, coin_name: Optional[str]) -> List[str]:
        t = ticker.lower()
        names = [t, (coin_name or '').lower().replace(' ', ''), f"{t}coin", f"{t}token",
                 f"{t}network"]
        return list(dict.fromkeys(n for n in names if n))

    async def fetch(self, ticker: str, coin_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        about = None
        subreddit = None
        for name in self.subreddit_candidates(ticker, coin_name):
            payload = await self._make_request(f'r/{name}/about.json')
            data = (payload or {}).get('data') or {}
            if data.get('subscribers'):
                about, subreddit = data, name
                break

        if not about:
            logger.info(f"No subreddit found for {ticker}")
            return None

        hot = await self._make_request(f'r/{subreddit}/hot.json', params={'limit': 25}) or {}
        posts = [child.get('data', {}) for child in (hot.get('data') or {}).get('children', [])]

        subscribers = about.get('subscribers', 0)
        active = about.get('active_user_count') or about.get('accounts_active') or 0
        interactions = [p.get('score', 0) + p.get('num_comments', 0) for p in posts]
        engagement_rate = sum(interactions) / len(interactions) / 10 if interactions else 0

        return {
            'subreddit': subreddit,
            'subscribers': subscribers,
            'active_users': active,
            'activity_ratio': round((safe_divide(active, subscribers) or 0) * 100, 3),
            'engagement_rate': round(engagement_rate, 2),
            'posts_sampled': len(posts),
        }


class GitHubCollector(HttpCollector):
    """GitHub REST API client"""

    provider = "github"

    def __init__(self, token: Optional[str] = None, base_url: str = "https://api.github.com",
                 timeout: float = 10.0, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url, api_key=token, timeout=timeout, session=session)

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/vnd.github+json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        return headers

    async def _find_repository(self, ticker: str, coin_name: Optional[str]) -> Optional[Dict]:
        for query in filter(None, [coin_name, ticker, f"{ticker} blockchain"]):
            payload = await self._make_request('search/repositories', params={
                'q': query, 'sort': 'stars', 'order': 'desc', 'per_page': 5,
            }) or {}
            items = payload.get('items') or []
            if items:
                return items[0]
        return None

    async def fetch(self, ticker: str, coin_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        repo = await self._find_repository(ticker, coin_name)
        if not repo:
            logger.info(f"No GitHub repository found for {ticker}")
            return None

        full_name = repo['full_name']
        since = (datetime.now(timezone.utc) - timedelta(days=30)).isoformat()
        commits, contributors = await asyncio.gather(
            self._make_request(f'repos/{full_name}/commits', params={'since': since, 'per_page': 100}),
            self._make_request(f'repos/{full_name}/contributors', params={'per_page': 100}),
        )
        commits = commits or []

        last_push = _parse_time(repo.get('pushed_at'))
        days_since = (datetime.now(timezone.utc) - last_push).days if last_push else None

        return {
            'repository': full_name,
            'stars': repo.get('stargazers_count', 0),
            'forks': repo.get('forks_count', 0),
            'commits_last_month': len(commits),
            'contributors': len(contributors or []),
            'days_since_last_commit': days_since,
            'is_archived': bool(repo.get('archived')),
        }


class SocialDataCollector:
    """
    Social provider used by the orchestrator.

    Platforms without credentials are skipped; a platform error only costs
    that platform. Returns None when nothing answered.
    """

    def __init__(self, twitter: Optional[TwitterCollector] = None,
                 reddit: Optional[RedditCollector] = None,
                 github: Optional[GitHubCollector] = None,
                 aggregator: Optional[SocialAggregator] = None):
        self.twitter = twitter
        self.reddit = reddit
        self.github = github
        self.aggregator = aggregator or SocialAggregator()

    async def _safe(self, name: str, coro) -> Optional[Dict[str, Any]]:
        try:
            return await coro
        except ProviderUnavailableError as e:
            logger.warning(f"{name} unavailable: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"{name} returned an unexpected payload: {e}")
        return None

    async def _none(self) -> None:
        return None

    async def fetch(self, ticker: str, coin_name: Optional[str] = None) -> Optional[EnhancedSocialMetrics]:
        twitter, reddit, github = await asyncio.gather(
            self._safe('twitter', self.twitter.fetch(ticker)) if self.twitter else self._none(),
            self._safe('reddit', self.reddit.fetch(ticker, coin_name)) if self.reddit else self._none(),
            self._safe('github', self.github.fetch(ticker, coin_name)) if self.github else self._none(),
        )
        return self.aggregator.build(twitter=twitter, reddit=reddit, github=github)

    async def close(self):
        for client in (self.twitter, self.reddit, self.github):
            if client:
                await client.close()
