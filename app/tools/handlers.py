"""Tool handlers: fetch through the data source, score with the analytics core."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from app.analytics import competitive, metrics, prospects
from app.analytics.hashtags import analyze_hashtags, evaluate_hashtag, hashtag_recommendations
from app.core.config import Settings
from app.models.analytics import ComparisonType, FailedTarget, ScoringWeights
from app.models.instagram import ProfileData
from app.services.apify import InstagramDataSource
from app.services.scheduler import FetchScheduler, split_outcomes
from app.tools.schemas import (
    CompareProfilesArgs,
    CompareProfilesResult,
    CompetitiveAnalysisArgs,
    CompetitiveAnalysisResult,
    CompetitiveSummary,
    HashtagAnalysisArgs,
    HashtagAnalysisResult,
    ProfileAnalysisArgs,
    ProfileAnalysisResult,
    ProspectArgs,
    ProspectResult,
    SearchResults,
)

logger = logging.getLogger(__name__)

PROSPECT_POSTS_LIMIT = 30
DISCOVERY_HASHTAG_LIMIT = 3
DISCOVERY_PROFILES_PER_HASHTAG = 15


class ToolContext:
    """Everything a handler needs, passed in explicitly per request."""

    def __init__(
        self,
        source: InstagramDataSource,
        settings: Settings,
        scheduler: Optional[FetchScheduler] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.settings = settings
        self.scheduler = scheduler or FetchScheduler(
            delay_seconds=settings.request_delay_seconds,
            max_requests_per_hour=settings.max_requests_per_hour,
        )
        self.now = now or (lambda: datetime.now(timezone.utc))

    def default_weights(self) -> ScoringWeights:
        return ScoringWeights(
            industry=self.settings.prospect_weight_industry,
            audience=self.settings.prospect_weight_audience,
            location=self.settings.prospect_weight_location,
            content=self.settings.prospect_weight_content,
        )

    async def fetch_for_analysis(self, username: str, posts_limit: int) -> ProfileData:
        data = await self.source.fetch_profile_and_posts(username, posts_limit)
        metrics.require_min_posts(data.posts, self.settings.min_posts_for_analysis)
        return data


async def analyze_profile(ctx: ToolContext, args: ProfileAnalysisArgs) -> ProfileAnalysisResult:
    logger.info("Analyzing profile @%s", args.username)
    data = await ctx.fetch_for_analysis(args.username, args.posts_limit)

    result = ProfileAnalysisResult(
        profile=data.profile,
        posts_analyzed=len(data.posts),
        analytics=metrics.compute(data.posts, data.profile.followers_count),
        hashtag_stats=list(analyze_hashtags(data.posts).values()),
    )
    logger.info("Analysis complete for @%s", args.username)
    return result


async def compare_profiles(ctx: ToolContext, args: CompareProfilesArgs) -> CompareProfilesResult:
    usernames = _unique_handles(args.usernames)
    logger.info("Comparing %s profiles", len(usernames))

    outcomes = await ctx.scheduler.run(
        usernames, lambda username: ctx.fetch_for_analysis(username, args.posts_limit)
    )
    entries, failures = split_outcomes(outcomes)
    comparison = competitive.compare_profiles(entries)

    return CompareProfilesResult(**comparison.model_dump(), failed=_failed(failures))


async def competitive_analysis(
    ctx: ToolContext, args: CompetitiveAnalysisArgs
) -> CompetitiveAnalysisResult:
    brand_handle = ctx.settings.brand_handle
    competitors = _unique_handles(
        args.competitors if args.competitors is not None else ctx.settings.competitor_handles
    )
    competitors = [c for c in competitors if c != brand_handle or not args.include_brand]
    logger.info("Competitive analysis of %s profiles", len(competitors))

    brand_data = None
    brand_analysis = None
    if args.include_brand:
        logger.info("Analyzing baseline @%s", brand_handle)
        brand_data = await ctx.source.fetch_profile_and_posts(brand_handle, args.posts_limit)
        brand_analysis = competitive.analyze(brand_data, brand_data, ComparisonType.SELF)

    outcomes = await ctx.scheduler.run(
        competitors,
        lambda username: ctx.source.fetch_profile_and_posts(username, args.posts_limit),
    )
    fetched, failures = split_outcomes(outcomes)

    comparison_type = ComparisonType.COMPETITOR if brand_data else ComparisonType.PEER
    analyses = [
        competitive.analyze(data, brand_data or data, comparison_type) for data in fetched
    ]

    matrix = competitive.competitive_matrix(analyses, brand_analysis)
    key_insights = []
    if matrix:
        leader = matrix[0]
        key_insights.append(f"Leader: @{leader.username} with score {leader.overall_score}")
        avg_engagement = sum(row.avg_engagement for row in matrix) / len(matrix)
        avg_frequency = sum(row.post_frequency for row in matrix) / len(matrix)
        key_insights.append(f"Average relative engagement: {round(avg_engagement)}%")
        key_insights.append(f"Average posting frequency: {avg_frequency:.1f} posts/week")
    if failures:
        key_insights.append(f"{len(failures)} profiles could not be analyzed")

    logger.info("Competitive analysis complete: %s profiles analyzed", len(analyses))
    return CompetitiveAnalysisResult(
        brand=brand_analysis,
        competitors=analyses,
        failed=_failed(failures),
        summary=CompetitiveSummary(
            market_position=competitive.market_position(matrix, brand_handle),
            key_insights=key_insights,
            competitive_matrix=matrix,
        ),
    )


async def analyze_hashtag_performance(
    ctx: ToolContext, args: HashtagAnalysisArgs
) -> HashtagAnalysisResult:
    username = args.username or ctx.settings.brand_handle
    logger.info("Analyzing hashtags of @%s over %s days", username, args.timeframe_days)

    data = await ctx.source.fetch_profile_and_posts(username, ctx.settings.max_posts_per_analysis)
    cutoff = ctx.now() - timedelta(days=args.timeframe_days)
    recent = [p for p in data.posts if p.timestamp > cutoff]
    stats = analyze_hashtags(recent)

    tags = list(dict.fromkeys(t.strip().lstrip("#").lower() for t in args.hashtags if t.strip("# ")))
    outcomes = await ctx.scheduler.run(
        tags, lambda tag: ctx.source.fetch_hashtag(tag, args.posts_per_hashtag)
    )
    samples, failures = split_outcomes(outcomes)

    return HashtagAnalysisResult(
        username=data.profile.username or username,
        posts_analyzed=len(recent),
        hashtag_stats=stats,
        recommendations=hashtag_recommendations(stats, ctx.settings.brand_hashtags),
        evaluations=[evaluate_hashtag(s, ctx.settings.brand_hashtags) for s in samples],
        failed=_failed(failures),
    )


async def prospect_clients(ctx: ToolContext, args: ProspectArgs) -> ProspectResult:
    weights = args.weights or ctx.default_weights()
    target_city = (args.location or ctx.settings.target_city).split(",")[0].strip()

    targets = _unique_handles(args.targets)
    search_results = None
    if args.auto_search:
        discovered = await _discover_prospects(ctx, args.search_hashtags, args.max_prospects)
        search_results = SearchResults(
            total_found=len(discovered),
            hashtags_used=args.search_hashtags[:DISCOVERY_HASHTAG_LIMIT],
            auto_discovered=discovered,
        )
        targets = _unique_handles(targets + discovered)

    targets = targets[: args.max_prospects]
    logger.info("Evaluating %s prospects near %s", len(targets), target_city)

    outcomes = await ctx.scheduler.run(
        targets,
        lambda username: ctx.source.fetch_profile_and_posts(username, PROSPECT_POSTS_LIMIT),
    )
    fetched, failures = split_outcomes(outcomes)

    now = ctx.now()
    evaluations = prospects.rank(
        [
            prospects.evaluate(
                data,
                weights=weights,
                location_keywords=ctx.settings.target_locations,
                target_city=target_city,
                now=now,
            )
            for data in fetched
        ]
    )

    logger.info("Prospection complete: %s evaluated, %s failed", len(evaluations), len(failures))
    return ProspectResult(
        prospects=evaluations,
        failed=_failed(failures),
        search_results=search_results,
        summary=prospects.prospection_summary(evaluations),
    )


async def _discover_prospects(ctx: ToolContext, hashtags: List[str], max_results: int) -> List[str]:
    tags = [t.strip().lstrip("#") for t in hashtags if t.strip("# ")][:DISCOVERY_HASHTAG_LIMIT]
    limit = min(max_results, DISCOVERY_PROFILES_PER_HASHTAG)
    outcomes = await ctx.scheduler.run(
        tags, lambda tag: ctx.source.search_profiles_by_hashtag(tag, limit)
    )
    found, _ = split_outcomes(outcomes)

    discovered = [
        profile.username
        for profiles in found
        for profile in profiles
        if prospects.is_relevant_for_prospection(profile)
    ]
    return _unique_handles(discovered)[:max_results]


def _unique_handles(handles: List[str]) -> List[str]:
    cleaned = (h.strip().lstrip("@") for h in handles)
    return list(dict.fromkeys(h for h in cleaned if h))


def _failed(failures: Dict[str, str]) -> List[FailedTarget]:
    return [FailedTarget(username=key, error=message) for key, message in failures.items()]
