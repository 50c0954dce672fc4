from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, model_validator

from app.models.instagram import Post, Profile


class HashtagRanking(BaseModel):
    hashtag: str
    frequency: int
    avg_engagement: float


class AnalyticsSnapshot(BaseModel):
    avg_likes: float
    avg_comments: float
    avg_engagement: float
    engagement_rate: float
    posting_frequency: float
    best_posting_times: List[str]
    best_posting_day: Optional[str] = None
    top_hashtags: List[HashtagRanking]
    top_performing_post: Optional[Post] = None


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class HashtagStat(BaseModel):
    hashtag: str
    occurrences: int
    avg_engagement: float
    avg_likes: float
    avg_comments: float
    trend: Trend


class HashtagRecommendations(BaseModel):
    top_performing: List[str]
    underperforming: List[str]
    suggested: List[str]


class HashtagEvaluation(BaseModel):
    hashtag: str
    total_posts: int
    avg_engagement: float
    popularity: int
    difficulty: int
    relevance: int
    trend: Trend
    should_use: bool
    reasons: List[str]
    best_time_to_use: str


class ComparisonType(str, Enum):
    SELF = "self"
    COMPETITOR = "competitor"
    PEER = "peer"


class CompetitiveMetrics(BaseModel):
    avg_engagement: float = 0.0
    avg_likes: float = 0.0
    avg_comments: float = 0.0
    engagement_rate: float = 0.0
    posts_per_week: float = 0.0
    content_types: Dict[str, int] = Field(
        default_factory=lambda: {"photo": 0, "video": 0, "carousel": 0}
    )
    hashtag_usage: float = 0.0
    top_hashtags: List[HashtagRanking] = Field(default_factory=list)


class CompetitiveComparison(BaseModel):
    followers_gap: int
    engagement_comparison: float
    post_frequency: float
    content_similarity: float = Field(ge=0.0, le=1.0)


class SwotInsights(BaseModel):
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)
    threats: List[str] = Field(default_factory=list)


class CompetitiveAnalysis(BaseModel):
    profile: Profile
    comparison_type: ComparisonType
    metrics: CompetitiveMetrics
    comparison: CompetitiveComparison
    insights: SwotInsights
    recommendations: List[str]
    overall_score: int = Field(ge=0, le=100)


class MatrixRow(BaseModel):
    username: str
    followers: int
    avg_engagement: int
    post_frequency: float
    content_score: int
    overall_score: int


class ProfileComparisonRow(BaseModel):
    engagement_rate: float
    avg_likes: float
    avg_comments: float
    posting_frequency: float
    top_hashtags: List[str]
    followers_count: int
    posts_count: int


class ProfileComparison(BaseModel):
    comparison: Dict[str, ProfileComparisonRow]
    leader: Optional[str]
    opportunities: List[str]
    recommendations: List[str]


class ScoringWeights(BaseModel):
    industry: float = 0.4
    audience: float = 0.3
    location: float = 0.2
    content: float = 0.1

    @model_validator(mode="after")
    def _check_weights(self) -> "ScoringWeights":
        values = (self.industry, self.audience, self.location, self.content)
        if any(value < 0 for value in values):
            raise ValueError("scoring weights must be non-negative")
        if abs(sum(values) - 1.0) > 0.01:
            raise ValueError(f"scoring weights must sum to 1.0, got {sum(values):.3f}")
        return self


class Priority(str, Enum):
    ALTA = "alta"
    MEDIA = "media"
    BAJA = "baja"


class ProspectScore(BaseModel):
    industry_match: float = Field(ge=0, le=100)
    audience_match: float = Field(ge=0, le=100)
    location_match: float = Field(ge=0, le=100)
    content_style: float = Field(ge=0, le=100)
    score: int = Field(ge=0, le=100)
    priority: Priority


class ProspectInsights(BaseModel):
    strengths: List[str]
    opportunities: List[str]
    contact_recommendations: List[str]


class ProspectActionPlan(BaseModel):
    priority: Priority
    next_steps: List[str]
    timeline: str


class ProspectEvaluation(BaseModel):
    username: str
    profile: Profile
    score: ProspectScore
    insights: ProspectInsights
    action_plan: ProspectActionPlan


class PlannedAction(BaseModel):
    prospect: str
    action: str
    timeline: str


class ProspectionSummary(BaseModel):
    high_priority: List[str]
    medium_priority: List[str]
    low_priority: List[str]
    average_score: int
    immediate: List[PlannedAction]
    short_term: List[PlannedAction]
    long_term: List[PlannedAction]


class FailedTarget(BaseModel):
    username: str
    error: str


class ToolMetadata(BaseModel):
    processing_time_ms: int
    timestamp: datetime


class ToolResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    metadata: ToolMetadata
