"""Pairwise comparison of a profile against a baseline, plus SWOT labelling."""

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence

from app.analytics.metrics import average_engagement, engagement_rate, posting_frequency
from app.core.errors import safe_divide
from app.models.analytics import (
    CompetitiveAnalysis,
    CompetitiveComparison,
    CompetitiveMetrics,
    ComparisonType,
    HashtagRanking,
    MatrixRow,
    ProfileComparison,
    ProfileComparisonRow,
    SwotInsights,
)
from app.models.instagram import MediaType, Post, ProfileData

logger = logging.getLogger(__name__)

HASHTAG_WEIGHT = 0.6
MEDIA_MIX_WEIGHT = 0.4


def competitive_metrics(data: ProfileData) -> CompetitiveMetrics:
    posts = data.posts
    if not posts:
        return CompetitiveMetrics()

    avg = average_engagement(posts)
    counts = Counter(p.media_type.value for p in posts)
    tag_counts = Counter(tag for p in posts for tag in p.hashtags)
    top = [
        HashtagRanking(
            hashtag=tag,
            frequency=freq,
            avg_engagement=round(average_engagement([p for p in posts if tag in p.hashtags]), 2),
        )
        for tag, freq in tag_counts.most_common(5)
    ]

    return CompetitiveMetrics(
        avg_engagement=round(avg, 2),
        avg_likes=round(safe_divide(sum(p.likes_count for p in posts), len(posts)), 2),
        avg_comments=round(safe_divide(sum(p.comments_count for p in posts), len(posts)), 2),
        engagement_rate=round(engagement_rate(avg, data.profile.followers_count), 2),
        posts_per_week=round(posting_frequency(posts), 1),
        content_types={m.value: counts.get(m.value, 0) for m in MediaType},
        hashtag_usage=round(safe_divide(sum(len(p.hashtags) for p in posts), len(posts)), 2),
        top_hashtags=top,
    )


def compare(subject: ProfileData, baseline: ProfileData) -> CompetitiveComparison:
    """Gaps and ratios of ``subject`` relative to ``baseline``.

    A profile compared against itself always yields an engagement ratio of
    exactly ``1.0``. Otherwise the baseline engagement is floored at 1 so an
    inactive baseline never divides by zero.
    """

    subject_avg = average_engagement(subject.posts)
    baseline_avg = average_engagement(baseline.posts)
    if subject_avg == baseline_avg:
        ratio = 1.0
    else:
        ratio = subject_avg / max(1.0, baseline_avg)

    return CompetitiveComparison(
        followers_gap=subject.profile.followers_count - baseline.profile.followers_count,
        engagement_comparison=round(ratio, 4),
        post_frequency=round(posting_frequency(subject.posts), 1),
        content_similarity=content_similarity(subject.posts, baseline.posts),
    )


def content_similarity(posts_a: Sequence[Post], posts_b: Sequence[Post]) -> float:
    if not posts_a or not posts_b:
        return 0.0

    tags_a = {tag for p in posts_a for tag in p.hashtags}
    tags_b = {tag for p in posts_b for tag in p.hashtags}
    hashtag_similarity = safe_divide(len(tags_a & tags_b), max(len(tags_a), len(tags_b)))

    mix_a = _media_mix(posts_a)
    mix_b = _media_mix(posts_b)
    distance = sum(abs(mix_a[m] - mix_b[m]) for m in MediaType) / 2
    mix_similarity = 1 - distance

    score = hashtag_similarity * HASHTAG_WEIGHT + mix_similarity * MEDIA_MIX_WEIGHT
    return round(min(1.0, max(0.0, score)), 2)


def swot(
    data: ProfileData,
    metrics: CompetitiveMetrics,
    comparison: CompetitiveComparison,
    comparison_type: ComparisonType,
) -> SwotInsights:
    insights = SwotInsights()
    photos = metrics.content_types.get(MediaType.PHOTO.value, 0)
    videos = metrics.content_types.get(MediaType.VIDEO.value, 0)
    is_competitor = comparison_type == ComparisonType.COMPETITOR

    if metrics.avg_engagement > 100:
        insights.strengths.append("High audience engagement")
    if 3 <= metrics.posts_per_week <= 7:
        insights.strengths.append("Consistent posting frequency")
    if data.profile.followers_count > 10_000:
        insights.strengths.append("Solid follower base")
    if data.posts and videos > photos * 0.3:
        insights.strengths.append("Good use of video content")

    if metrics.avg_engagement < 30:
        insights.weaknesses.append("Low engagement compared to potential")
    if metrics.posts_per_week < 2:
        insights.weaknesses.append("Inconsistent posting frequency")
    if metrics.hashtag_usage < 5:
        insights.weaknesses.append("Hashtags underused for reach")

    if is_competitor and comparison.content_similarity < 0.3:
        insights.opportunities.append("Content clearly differentiated from competitor")
    if videos < len(data.posts) * 0.4:
        insights.opportunities.append("Increase video content for more reach")

    if is_competitor and comparison.engagement_comparison < 0.7:
        insights.threats.append("Competitor engagement is higher")
    if is_competitor and comparison.followers_gap < -5000:
        insights.threats.append("Significant follower gap")

    return insights


def recommendations(
    data: ProfileData,
    metrics: CompetitiveMetrics,
    comparison: CompetitiveComparison,
    comparison_type: ComparisonType,
) -> List[str]:
    recs = []
    videos = metrics.content_types.get(MediaType.VIDEO.value, 0)

    if comparison_type == ComparisonType.COMPETITOR and comparison.engagement_comparison < 0.8:
        recs.append("Raise engagement with more interactive content (polls, questions, behind the scenes)")
    if metrics.posts_per_week < 3:
        recs.append("Post 3-5 times per week to stay visible")
    if videos < len(data.posts) * 0.3:
        recs.append("Publish more video (reels, stories) for organic reach")
    if metrics.hashtag_usage < 8:
        recs.append("Use 10-15 hashtags per post, mixing popular and niche tags")
    return recs[:6]


def overall_score(comparison: CompetitiveComparison, insights: SwotInsights) -> int:
    engagement_score = min(comparison.engagement_comparison * 100, 100)
    frequency_score = min(comparison.post_frequency * 20, 100)
    content_score = comparison.content_similarity * 100

    score = engagement_score * 0.4 + frequency_score * 0.3 + content_score * 0.3
    score += len(insights.strengths) * 5
    score -= len(insights.weaknesses) * 3
    return round(max(0.0, min(100.0, score)))


def analyze(
    subject: ProfileData, baseline: ProfileData, comparison_type: ComparisonType
) -> CompetitiveAnalysis:
    metrics = competitive_metrics(subject)
    comparison = compare(subject, baseline)
    insights = swot(subject, metrics, comparison, comparison_type)
    return CompetitiveAnalysis(
        profile=subject.profile,
        comparison_type=comparison_type,
        metrics=metrics,
        comparison=comparison,
        insights=insights,
        recommendations=recommendations(subject, metrics, comparison, comparison_type),
        overall_score=overall_score(comparison, insights),
    )


def competitive_matrix(
    analyses: Sequence[CompetitiveAnalysis], baseline: Optional[CompetitiveAnalysis] = None
) -> List[MatrixRow]:
    rows = []
    if baseline is not None:
        rows.append(_matrix_row(baseline))
    rows.extend(_matrix_row(a) for a in analyses)
    rows.sort(key=lambda row: -row.overall_score)
    return rows


def market_position(matrix: Sequence[MatrixRow], brand: str) -> str:
    usernames = [row.username for row in matrix]
    if brand not in usernames:
        return "Market analysed without a brand baseline"

    rank = usernames.index(brand)
    if rank == 0:
        return f"@{brand} leads the market in engagement and audience interaction"
    if rank == 1:
        return f"@{brand} is a strong challenger, close behind the leader"
    if rank <= len(matrix) / 2:
        return f"@{brand} holds a solid competitive position"
    return f"@{brand} has significant room for competitive improvement"


def compare_profiles(entries: Sequence[ProfileData]) -> ProfileComparison:
    """Side-by-side metrics for several profiles and the engagement leader."""

    comparison: Dict[str, ProfileComparisonRow] = {}
    for data in entries:
        avg = average_engagement(data.posts)
        comparison[data.profile.username] = ProfileComparisonRow(
            engagement_rate=round(engagement_rate(avg, data.profile.followers_count), 2),
            avg_likes=round(safe_divide(sum(p.likes_count for p in data.posts), len(data.posts)), 2),
            avg_comments=round(safe_divide(sum(p.comments_count for p in data.posts), len(data.posts)), 2),
            posting_frequency=round(posting_frequency(data.posts), 1),
            top_hashtags=[tag for tag, _ in Counter(t for p in data.posts for t in p.hashtags).most_common(5)],
            followers_count=data.profile.followers_count,
            posts_count=data.profile.posts_count,
        )

    if not comparison:
        return ProfileComparison(comparison={}, leader=None, opportunities=[], recommendations=[])

    # first profile wins ties
    leader = max(comparison, key=lambda name: comparison[name].engagement_rate)
    best = comparison[leader]
    opportunities = []
    recs = []
    for name, row in comparison.items():
        if name == leader:
            continue
        if row.engagement_rate < best.engagement_rate * 0.8:
            gap = (1 - safe_divide(row.engagement_rate, best.engagement_rate)) * 100
            opportunities.append(f"{name} has {gap:.1f}% lower engagement rate")
        if row.posting_frequency < best.posting_frequency * 0.8:
            recs.append(f"{name} should increase posting frequency to match {leader}")

    return ProfileComparison(
        comparison=comparison,
        leader=leader,
        opportunities=opportunities,
        recommendations=recs,
    )


def _matrix_row(analysis: CompetitiveAnalysis) -> MatrixRow:
    is_self = analysis.comparison_type == ComparisonType.SELF
    return MatrixRow(
        username=analysis.profile.username,
        followers=analysis.profile.followers_count,
        avg_engagement=100 if is_self else round(analysis.comparison.engagement_comparison * 100),
        post_frequency=analysis.comparison.post_frequency,
        content_score=100 if is_self else round(analysis.comparison.content_similarity * 100),
        overall_score=analysis.overall_score,
    )


def _media_mix(posts: Sequence[Post]) -> Dict[MediaType, float]:
    counts = Counter(p.media_type for p in posts)
    return {m: safe_divide(counts.get(m, 0), len(posts)) for m in MediaType}
