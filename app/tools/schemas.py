from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from app.models.analytics import (
    AnalyticsSnapshot,
    CompetitiveAnalysis,
    FailedTarget,
    HashtagEvaluation,
    HashtagRecommendations,
    HashtagStat,
    MatrixRow,
    ProfileComparison,
    ProspectEvaluation,
    ProspectionSummary,
    ScoringWeights,
)
from app.models.instagram import Profile


class ProfileAnalysisArgs(BaseModel):
    username: str = Field(..., min_length=1, description="Instagram username (without @)")
    posts_limit: int = Field(50, ge=1, le=100, description="Maximum number of posts to analyze")


class CompareProfilesArgs(BaseModel):
    usernames: List[str] = Field(..., min_length=1, description="Instagram usernames to compare")
    posts_limit: int = Field(20, ge=1, le=100, description="Maximum posts per profile")


class CompetitiveAnalysisArgs(BaseModel):
    competitors: Optional[List[str]] = Field(
        None, description="Competitor usernames; defaults to the configured competitors"
    )
    include_brand: bool = Field(True, description="Use the brand account as the baseline")
    posts_limit: int = Field(30, ge=1, le=100, description="Posts to analyze per profile")


class HashtagAnalysisArgs(BaseModel):
    username: Optional[str] = Field(
        None, description="Profile whose hashtags are analyzed; defaults to the brand account"
    )
    hashtags: List[str] = Field(
        default_factory=list, description="Extra hashtags to evaluate (with or without #)"
    )
    timeframe_days: int = Field(30, ge=1, le=365, description="Only posts newer than this are used")
    posts_per_hashtag: int = Field(50, ge=1, le=100, description="Sample size per evaluated hashtag")


class ProspectArgs(BaseModel):
    targets: List[str] = Field(default_factory=list, description="Usernames to evaluate (without @)")
    search_hashtags: List[str] = Field(
        default_factory=lambda: ["cervezaartesanal", "barsantiago", "restosantiago", "craftbeer"],
        description="Hashtags used to discover prospects",
    )
    auto_search: bool = Field(True, description="Discover prospects from search_hashtags")
    location: Optional[str] = Field(None, description="Target city; defaults to the configured one")
    max_prospects: int = Field(20, ge=1, le=100, description="Maximum prospects to evaluate")
    weights: Optional[ScoringWeights] = Field(None, description="Custom scoring weights")


class ProfileAnalysisResult(BaseModel):
    profile: Profile
    posts_analyzed: int
    analytics: AnalyticsSnapshot
    hashtag_stats: List[HashtagStat]


class CompareProfilesResult(ProfileComparison):
    failed: List[FailedTarget]


class CompetitiveSummary(BaseModel):
    market_position: str
    key_insights: List[str]
    competitive_matrix: List[MatrixRow]


class CompetitiveAnalysisResult(BaseModel):
    brand: Optional[CompetitiveAnalysis]
    competitors: List[CompetitiveAnalysis]
    failed: List[FailedTarget]
    summary: CompetitiveSummary


class HashtagAnalysisResult(BaseModel):
    username: str
    posts_analyzed: int
    hashtag_stats: Dict[str, HashtagStat]
    recommendations: HashtagRecommendations
    evaluations: List[HashtagEvaluation]
    failed: List[FailedTarget]


class SearchResults(BaseModel):
    total_found: int
    hashtags_used: List[str]
    auto_discovered: List[str]


class ProspectResult(BaseModel):
    prospects: List[ProspectEvaluation]
    failed: List[FailedTarget]
    search_results: Optional[SearchResults]
    summary: ProspectionSummary
