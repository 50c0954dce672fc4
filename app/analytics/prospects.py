"""Lead scoring for bars, restaurants and venues that could carry the brand.

Every sub-score is a 0-100 keyword/threshold heuristic; the final score is
their weighted sum, bucketed into the ``alta``/``media``/``baja`` tiers.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from app.analytics.metrics import average_engagement, engagement_rate
from app.core.errors import safe_divide
from app.models.analytics import (
    PlannedAction,
    Priority,
    ProspectActionPlan,
    ProspectEvaluation,
    ProspectInsights,
    ProspectScore,
    ProspectionSummary,
    ScoringWeights,
)
from app.models.instagram import Post, Profile, ProfileData

logger = logging.getLogger(__name__)

BEER_KEYWORDS = ("cerveza", "beer", "craft", "artesanal", "brewery", "brewing", "hop", "malta")
FOOD_KEYWORDS = ("comida", "food", "gastronomy", "cocina", "restaurant", "resto", "bar", "pub")
EXPERIENCE_KEYWORDS = ("terraza", "ambiente", "music", "live", "evento", "event")
EXPERIENCE_CAPTION_KEYWORDS = ("ambiente", "experiencia", "música", "live", "evento", "celebr")

RELEVANT_KEYWORDS = (
    "bar", "resto", "restaurant", "pub", "cerveza", "beer", "gastronomy", "gastronomia",
    "cocina", "kitchen", "food", "comida", "drinks", "tragos", "cocktails", "terrace",
    "terraza", "bistro", "cafe", "brewery", "cerveceria",
)
PERSONAL_KEYWORDS = ("personal", "blog", "influencer", "model", "artist")

MIN_PROSPECT_FOLLOWERS = 100
MAX_PROSPECT_FOLLOWERS = 100_000
LOCATION_KEYWORD_POINTS = 25
LOCATION_KEYWORD_CAP = 50
NEUTRAL_LOCATION_SCORE = 30
RECENT_WINDOW = timedelta(days=30)


def is_relevant_for_prospection(profile: Profile) -> bool:
    """Cheap gate applied to discovered accounts before full scoring."""
    text = f"{profile.biography} {profile.full_name}".lower()
    if not any(keyword in text for keyword in RELEVANT_KEYWORDS):
        return False
    if any(keyword in text for keyword in PERSONAL_KEYWORDS):
        return False
    return MIN_PROSPECT_FOLLOWERS <= profile.followers_count <= MAX_PROSPECT_FOLLOWERS


def score(
    profile: Profile,
    posts: Sequence[Post],
    weights: Optional[ScoringWeights] = None,
    location_keywords: Sequence[str] = (),
    target_city: str = "",
    now: Optional[datetime] = None,
) -> ProspectScore:
    weights = weights or ScoringWeights()
    industry = industry_match(profile, posts)
    audience = audience_match(profile, posts, now=now)
    location = location_match(profile, location_keywords, target_city)
    content = content_style(posts)

    total = (
        industry * weights.industry
        + audience * weights.audience
        + location * weights.location
        + content * weights.content
    )
    final = round(max(0.0, min(100.0, total)))
    return ProspectScore(
        industry_match=industry,
        audience_match=audience,
        location_match=location,
        content_style=content,
        score=final,
        priority=priority_for(final),
    )


def priority_for(value: float) -> Priority:
    if value >= 75:
        return Priority.ALTA
    if value >= 50:
        return Priority.MEDIA
    return Priority.BAJA


def industry_match(profile: Profile, posts: Sequence[Post]) -> float:
    bio = profile.biography.lower()
    captions = " ".join(p.caption.lower() for p in posts)

    def hits(keywords):
        return sum(1 for k in keywords if k in bio or k in captions)

    points = hits(BEER_KEYWORDS) * 15 + hits(FOOD_KEYWORDS) * 10 + hits(EXPERIENCE_KEYWORDS) * 5

    category = (profile.category or "").lower()
    if "bar" in category:
        points += 25
    elif "restaurant" in category:
        points += 20

    return float(min(100, points))


def audience_match(profile: Profile, posts: Sequence[Post], now: Optional[datetime] = None) -> float:
    followers = profile.followers_count
    if 1_000 <= followers <= 50_000:
        points = 40
    elif 500 <= followers <= 100_000:
        points = 25
    else:
        points = 10

    if posts:
        rate = engagement_rate(average_engagement(posts), followers)
        if rate >= 2:
            points += 30
        elif rate >= 1:
            points += 20
        else:
            points += 10

    cutoff = (now or datetime.now(timezone.utc)) - RECENT_WINDOW
    recent = sum(1 for p in posts if p.timestamp > cutoff)
    if recent >= 8:
        points += 20
    elif recent >= 4:
        points += 15
    else:
        points += 5

    beer_posts = sum(1 for p in posts if _mentions_beer(p))
    points += min(10, beer_posts * 2)

    return float(min(100, points))


def location_match(profile: Profile, location_keywords: Sequence[str], target_city: str) -> float:
    bio = profile.biography.lower()
    keyword_points = sum(
        LOCATION_KEYWORD_POINTS for k in location_keywords if k and k.lower() in bio
    )
    points = min(LOCATION_KEYWORD_CAP, keyword_points)

    address = (profile.business_address or "").lower()
    if target_city and target_city.lower() in address:
        points += 50

    if points == 0:
        return float(NEUTRAL_LOCATION_SCORE)
    return float(min(100, points))


def content_style(posts: Sequence[Post]) -> float:
    points = len({p.media_type for p in posts}) * 15

    avg_hashtags = safe_divide(sum(len(p.hashtags) for p in posts), len(posts))
    if avg_hashtags >= 5:
        points += 25
    elif avg_hashtags >= 3:
        points += 15
    else:
        points += 5

    avg_caption = safe_divide(sum(len(p.caption) for p in posts), len(posts))
    if avg_caption >= 100:
        points += 20
    elif avg_caption >= 50:
        points += 15
    else:
        points += 10

    experiential = sum(
        1 for p in posts if any(k in p.caption.lower() for k in EXPERIENCE_CAPTION_KEYWORDS)
    )
    points += min(20, experiential * 3)

    return float(min(100, points))


def prospect_insights(profile: Profile, posts: Sequence[Post], result: ProspectScore) -> ProspectInsights:
    strengths = []
    if result.industry_match >= 70:
        strengths.append("Strong affinity with the beer industry")
    if result.audience_match >= 70:
        strengths.append("Active, engaged audience")
    if result.location_match >= 70:
        strengths.append("Located in the target area")
    if profile.followers_count >= 5_000:
        strengths.append("Solid local follower base")

    opportunities = []
    if any("cerveza" in p.caption.lower() for p in posts):
        opportunities.append("Already promotes beer content")
    if profile.business_email or profile.business_phone:
        opportunities.append("Business contact details available")
    if any(any("cerveza" in tag for tag in p.hashtags) for p in posts):
        opportunities.append("Uses beer-related hashtags")

    contact = []
    if profile.business_email:
        contact.append(f"Email: {profile.business_email}")
    if profile.business_phone:
        contact.append(f"Phone: {profile.business_phone}")
    contact.append("Engage with their beer posts before reaching out")
    contact.append("Offer a product tasting")
    if any("música" in p.caption.lower() or "live" in p.caption.lower() for p in posts):
        contact.append("Highlight the music and beer connection")

    return ProspectInsights(
        strengths=strengths,
        opportunities=opportunities,
        contact_recommendations=contact,
    )


def action_plan(profile: Profile, posts: Sequence[Post], result: ProspectScore) -> ProspectActionPlan:
    if result.priority == Priority.ALTA:
        timeline = "1-2 weeks"
        steps = [
            "Reach out immediately by DM or email",
            "Propose a meeting to present the products",
            "Offer a free tasting",
        ]
    elif result.priority == Priority.MEDIA:
        timeline = "1-2 months"
        steps = [
            "Follow the account",
            "Interact with their beer-related content",
            "Reach out at a strategic moment (events, promotions)",
        ]
    else:
        timeline = "3-6 months"
        steps = [
            "Monitor the account's activity",
            "Re-evaluate fit quarterly",
        ]

    if profile.business_email:
        steps.append("Send a commercial proposal by email")
    if any("evento" in p.caption.lower() for p in posts):
        steps.append("Propose joining their special events")

    return ProspectActionPlan(priority=result.priority, next_steps=steps, timeline=timeline)


def evaluate(
    data: ProfileData,
    weights: Optional[ScoringWeights] = None,
    location_keywords: Sequence[str] = (),
    target_city: str = "",
    now: Optional[datetime] = None,
) -> ProspectEvaluation:
    result = score(
        data.profile,
        data.posts,
        weights=weights,
        location_keywords=location_keywords,
        target_city=target_city,
        now=now,
    )
    return ProspectEvaluation(
        username=data.profile.username,
        profile=data.profile,
        score=result,
        insights=prospect_insights(data.profile, data.posts, result),
        action_plan=action_plan(data.profile, data.posts, result),
    )


def rank(evaluations: Sequence[ProspectEvaluation]) -> List[ProspectEvaluation]:
    """Highest score first; equal scores keep their input order."""
    return sorted(evaluations, key=lambda e: -e.score.score)


def prospection_summary(evaluations: Sequence[ProspectEvaluation]) -> ProspectionSummary:
    ranked = rank(evaluations)
    alta = [e.username for e in ranked if e.score.priority == Priority.ALTA]
    media = [e.username for e in ranked if e.score.priority == Priority.MEDIA]
    baja = [e.username for e in ranked if e.score.priority == Priority.BAJA]
    average = safe_divide(sum(e.score.score for e in ranked), len(ranked))

    return ProspectionSummary(
        high_priority=alta,
        medium_priority=media,
        low_priority=baja,
        average_score=round(average),
        immediate=[
            PlannedAction(prospect=u, action="Direct contact and tasting proposal", timeline="1-2 weeks")
            for u in alta[:3]
        ],
        short_term=[
            PlannedAction(prospect=u, action="Structured commercial contact", timeline="2-4 weeks")
            for u in alta[3:]
        ]
        + [
            PlannedAction(prospect=u, action="Social engagement and follow-up", timeline="1-2 months")
            for u in media[:5]
        ],
        long_term=[
            PlannedAction(prospect=u, action="Periodic monitoring and re-evaluation", timeline="3-6 months")
            for u in baja[:5]
        ],
    )


def _mentions_beer(post: Post) -> bool:
    caption = post.caption.lower()
    if "cerveza" in caption or "beer" in caption:
        return True
    return any("cerveza" in tag or "beer" in tag for tag in post.hashtags)
