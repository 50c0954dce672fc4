import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from app.core.errors import InsufficientDataError, safe_divide
from app.models.analytics import AnalyticsSnapshot, HashtagRanking
from app.models.instagram import Post

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
SECONDS_PER_DAY = 86400


def compute(posts: Sequence[Post], followers_count: Optional[int] = None) -> AnalyticsSnapshot:
    """Aggregate engagement statistics for a batch of posts.

    Args:
        posts: Posts of a single profile, in any order.
        followers_count: Audience size used for the engagement rate. When it
            is missing or zero the rate is reported as ``0``.

    Returns:
        A fresh :class:`AnalyticsSnapshot`.

    Raises:
        InsufficientDataError: If ``posts`` is empty.
    """

    if not posts:
        raise InsufficientDataError("Cannot compute metrics for an empty post list")

    avg_likes = safe_divide(sum(p.likes_count for p in posts), len(posts))
    avg_comments = safe_divide(sum(p.comments_count for p in posts), len(posts))
    avg_engagement = average_engagement(posts)

    return AnalyticsSnapshot(
        avg_likes=round(avg_likes, 2),
        avg_comments=round(avg_comments, 2),
        avg_engagement=round(avg_engagement, 2),
        engagement_rate=round(engagement_rate(avg_engagement, followers_count), 2),
        posting_frequency=round(posting_frequency(posts), 1),
        best_posting_times=best_posting_times(posts),
        best_posting_day=best_posting_day(posts),
        top_hashtags=rank_hashtags(posts),
        # max() keeps the first of equal candidates, so earlier input wins ties
        top_performing_post=max(posts, key=lambda p: p.engagement),
    )


def require_min_posts(posts: Sequence[Post], minimum: int) -> None:
    if len(posts) < minimum:
        raise InsufficientDataError(
            f"Insufficient posts for analysis. Found {len(posts)}, minimum required: {minimum}"
        )


def average_engagement(posts: Sequence[Post]) -> float:
    return safe_divide(sum(p.engagement for p in posts), len(posts))


def engagement_rate(avg_engagement: float, followers_count: Optional[int]) -> float:
    """Mean engagement per post as a percentage of the audience."""
    if not followers_count or followers_count <= 0:
        return 0.0
    return avg_engagement / followers_count * 100


def posting_frequency(posts: Sequence[Post]) -> float:
    """Posts per 7 days over the span between the oldest and newest post."""
    if not posts:
        return 0.0
    timestamps = [p.timestamp for p in posts]
    days_spanned = (max(timestamps) - min(timestamps)).total_seconds() / SECONDS_PER_DAY
    return len(posts) / max(1.0, days_spanned) * 7


def best_posting_times(posts: Sequence[Post], limit: int = 3) -> List[str]:
    buckets = _mean_engagement_by(posts, lambda p: p.timestamp.hour)
    ranked = sorted(buckets.items(), key=lambda item: (-item[1], item[0]))
    return [f"{hour}:00" for hour, _ in ranked[:limit]]


def best_posting_day(posts: Sequence[Post]) -> Optional[str]:
    buckets = _mean_engagement_by(posts, lambda p: p.timestamp.weekday())
    if not buckets:
        return None
    day, _ = min(buckets.items(), key=lambda item: (-item[1], item[0]))
    return WEEKDAYS[day]


def rank_hashtags(
    posts: Sequence[Post], min_occurrences: int = 2, limit: int = 10
) -> List[HashtagRanking]:
    """Hashtags used at least ``min_occurrences`` times, best mean engagement first.

    Ties keep the order in which the hashtags first appear in ``posts``.
    """

    totals: Dict[str, List[int]] = {}
    for post in posts:
        for tag in post.hashtags:
            totals.setdefault(tag, []).append(post.engagement)

    rankings = [
        HashtagRanking(
            hashtag=tag,
            frequency=len(values),
            avg_engagement=round(safe_divide(sum(values), len(values)), 2),
        )
        for tag, values in totals.items()
        if len(values) >= min_occurrences
    ]
    rankings.sort(key=lambda r: -r.avg_engagement)
    return rankings[:limit]


def _mean_engagement_by(posts: Sequence[Post], key) -> Dict[int, float]:
    groups: Dict[int, List[int]] = defaultdict(list)
    for post in posts:
        groups[key(post)].append(post.engagement)
    return {k: safe_divide(sum(v), len(v)) for k, v in groups.items()}
