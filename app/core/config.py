import logging
from functools import lru_cache
from pydantic import BaseModel, Field
import os
from dotenv import load_dotenv

load_dotenv()

log_level = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s :: %(levelname)s :: %(processName)s :: %(threadName)s :: %(filename)s :: %(funcName)s :: %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_BRAND_HASHTAGS = (
    "cervezaartesanal,cervezaartesanalchilena,zigurat,cerveza,rock,"
    "maipú,santiago,craftbeer,beer,cervecería"
)
DEFAULT_TARGET_LOCATIONS = (
    "santiago,providencia,las condes,vitacura,ñuñoa,la reina,maipú,"
    "san miguel,macul,chile"
)


def _csv_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    app_name: str = "Instagram Insights API"
    api_v1_prefix: str = "/api/v1"

    apify_api_token: str | None = os.getenv("APIFY_API_TOKEN")
    apify_base_url: str = os.getenv("APIFY_BASE_URL", "https://api.apify.com/v2")
    apify_profile_actor: str = os.getenv("APIFY_PROFILE_ACTOR", "apify~instagram-profile-scraper")
    apify_scraper_actor: str = os.getenv("APIFY_SCRAPER_ACTOR", "apify~instagram-scraper")
    apify_poll_interval: int = int(os.getenv("APIFY_POLL_INTERVAL", "5"))
    apify_max_wait_time: int = int(os.getenv("APIFY_MAX_WAIT_TIME", "300"))
    apify_request_timeout: float = float(os.getenv("APIFY_REQUEST_TIMEOUT", "120"))

    brand_handle: str = os.getenv("BRAND_INSTAGRAM_HANDLE", "zigurat_cca")
    competitor_handles: list[str] = Field(
        default_factory=lambda: _csv_env(
            "COMPETITOR_HANDLES", "kunstmann_chile,tropera_brewing,ccu_artesanal"
        )
    )
    brand_hashtags: list[str] = Field(
        default_factory=lambda: _csv_env("BRAND_HASHTAGS", DEFAULT_BRAND_HASHTAGS)
    )
    target_locations: list[str] = Field(
        default_factory=lambda: _csv_env("TARGET_LOCATIONS", DEFAULT_TARGET_LOCATIONS)
    )
    target_city: str = os.getenv("TARGET_CITY", "santiago")

    max_posts_per_analysis: int = int(os.getenv("MAX_POSTS_PER_ANALYSIS", "50"))
    min_posts_for_analysis: int = int(os.getenv("MIN_POSTS_FOR_ANALYSIS", "5"))

    request_delay_seconds: float = float(os.getenv("REQUEST_DELAY_SECONDS", "2.0"))
    max_requests_per_hour: int = int(os.getenv("MAX_REQUESTS_PER_HOUR", "100"))

    prospect_weight_industry: float = float(os.getenv("PROSPECT_WEIGHT_INDUSTRY", "0.4"))
    prospect_weight_audience: float = float(os.getenv("PROSPECT_WEIGHT_AUDIENCE", "0.3"))
    prospect_weight_location: float = float(os.getenv("PROSPECT_WEIGHT_LOCATION", "0.2"))
    prospect_weight_content: float = float(os.getenv("PROSPECT_WEIGHT_CONTENT", "0.1"))

    environment: str = os.getenv("ENVIRONMENT", "local")


@lru_cache
def get_settings() -> Settings:
    return Settings()
