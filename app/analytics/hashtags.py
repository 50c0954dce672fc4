"""Per-hashtag engagement statistics, trend detection and usage advice."""

import logging
from typing import Dict, List, Sequence, Tuple

from app.analytics.metrics import average_engagement
from app.core.errors import safe_divide
from app.models.analytics import (
    HashtagEvaluation,
    HashtagRecommendations,
    HashtagStat,
    Trend,
)
from app.models.instagram import HashtagSample, Post

logger = logging.getLogger(__name__)

MIN_OCCURRENCES = 2
MIN_POSTS_FOR_TREND = 4
TREND_THRESHOLD = 0.10

BEER_KEYWORDS = ("cerveza", "beer", "artesanal", "craft", "brewing", "brew", "hop", "malta", "lager", "ale", "ipa")
MUSIC_KEYWORDS = ("rock", "music", "musica", "metal", "punk", "alternativo")
LOCATION_KEYWORDS = ("chile", "chilena", "santiago", "maipu")


def analyze_hashtags(posts: Sequence[Post]) -> Dict[str, HashtagStat]:
    """Group ``posts`` by hashtag and summarise each group.

    Hashtags used fewer than two times are dropped. The mapping keeps the
    order in which hashtags first appear in ``posts``.
    """

    groups: Dict[str, List[Post]] = {}
    for post in posts:
        for tag in post.hashtags:
            groups.setdefault(tag, []).append(post)

    stats = {}
    for tag, tagged in groups.items():
        if len(tagged) < MIN_OCCURRENCES:
            continue
        stats[tag] = HashtagStat(
            hashtag=tag,
            occurrences=len(tagged),
            avg_engagement=round(average_engagement(tagged), 2),
            avg_likes=round(safe_divide(sum(p.likes_count for p in tagged), len(tagged)), 2),
            avg_comments=round(safe_divide(sum(p.comments_count for p in tagged), len(tagged)), 2),
            trend=detect_trend(tagged),
        )
    return stats


def detect_trend(posts: Sequence[Post]) -> Trend:
    """Compare mean engagement of the older and newer half of ``posts``.

    The newer half takes the extra post when the count is odd. Fewer than
    four posts is not enough signal and is always ``stable``.
    """

    if len(posts) < MIN_POSTS_FOR_TREND:
        return Trend.STABLE

    ordered = sorted(posts, key=lambda p: p.timestamp)
    midpoint = len(ordered) // 2
    first_avg = average_engagement(ordered[:midpoint])
    second_avg = average_engagement(ordered[midpoint:])

    if first_avg == 0:
        return Trend.UP if second_avg > 0 else Trend.STABLE

    change = (second_avg - first_avg) / first_avg
    if change > TREND_THRESHOLD:
        return Trend.UP
    if change < -TREND_THRESHOLD:
        return Trend.DOWN
    return Trend.STABLE


def hashtag_recommendations(
    stats: Dict[str, HashtagStat], suggested: Sequence[str] = ()
) -> HashtagRecommendations:
    ranked = sorted(stats.values(), key=lambda s: -s.avg_engagement)
    return HashtagRecommendations(
        top_performing=[s.hashtag for s in ranked[:5]],
        underperforming=[s.hashtag for s in ranked[-3:]] if len(ranked) > 5 else [],
        suggested=[
            tag for tag in (_clean(t) for t in suggested) if tag and tag not in stats
        ],
    )


def evaluate_hashtag(sample: HashtagSample, brand_hashtags: Sequence[str]) -> HashtagEvaluation:
    tag = _clean(sample.hashtag)
    avg = average_engagement(sample.posts)
    pop = popularity(sample.total_posts)
    diff = difficulty(pop, avg)
    rel = relevance(tag, brand_hashtags)
    use, reasons = should_use(pop, diff, rel)
    return HashtagEvaluation(
        hashtag=tag,
        total_posts=sample.total_posts,
        avg_engagement=round(avg, 2),
        popularity=pop,
        difficulty=diff,
        relevance=rel,
        trend=detect_trend(sample.posts),
        should_use=use,
        reasons=reasons,
        best_time_to_use=best_time_to_use(pop),
    )


def popularity(total_posts: int) -> int:
    if total_posts > 1_000_000:
        return 95
    if total_posts > 100_000:
        return 80
    if total_posts > 10_000:
        return 60
    if total_posts > 1_000:
        return 40
    return 20


def difficulty(popularity_score: int, avg_engagement: float) -> int:
    engagement_factor = min(avg_engagement / 1000 * 30, 30)
    return min(100, round(popularity_score * 0.7 + engagement_factor))


def relevance(hashtag: str, brand_hashtags: Sequence[str]) -> int:
    tag = _clean(hashtag)
    if not tag:
        return 0
    if tag in {_clean(t) for t in brand_hashtags}:
        return 100

    score = 0
    if any(keyword in tag for keyword in BEER_KEYWORDS):
        score += 80
    if any(keyword in tag for keyword in MUSIC_KEYWORDS):
        score += 60
    if any(keyword in tag for keyword in LOCATION_KEYWORDS):
        score += 40
    return min(100, score)


def should_use(popularity_score: int, difficulty_score: int, relevance_score: int) -> Tuple[bool, List[str]]:
    """Apply the usage rules in order; the last rule that matches decides."""

    rules = (
        (relevance_score >= 60 and difficulty_score <= 70, True,
         f"High brand relevance ({relevance_score}%)"),
        (40 <= popularity_score <= 80, True,
         "Balanced popularity for reach"),
        (difficulty_score <= 50 and relevance_score >= 40, True,
         "Low competition with acceptable relevance"),
        (difficulty_score > 80, False,
         "Too competitive to rank"),
        (relevance_score < 30, False,
         "Low relevance for the brand"),
    )

    decision = False
    reasons = []
    for matched, verdict, reason in rules:
        if matched:
            decision = verdict
            reasons.append(reason)
    return decision, reasons


def best_time_to_use(popularity_score: int) -> str:
    if popularity_score > 80:
        return "Viral content or collaborations"
    if popularity_score < 40:
        return "Niche or educational content"
    return "Core product posts"


def _clean(hashtag: str) -> str:
    return hashtag.strip().lstrip("#").lower()
