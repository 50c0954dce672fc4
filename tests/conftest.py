import pytest

from app.core.config import Settings
from app.services.scheduler import FetchScheduler
from app.tools.handlers import ToolContext
from tests.factories import NOW, FakeSource


@pytest.fixture
def settings():
    return Settings(
        apify_api_token="test-token",
        brand_handle="brand",
        competitor_handles=["rival_one", "rival_two"],
        brand_hashtags=["cervezaartesanal", "craftbeer", "beer"],
        target_locations=["santiago", "providencia", "chile"],
        target_city="santiago",
        min_posts_for_analysis=5,
        request_delay_seconds=0,
    )


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def ctx(source, settings):
    return ToolContext(
        source=source,
        settings=settings,
        scheduler=FetchScheduler(delay_seconds=0),
        now=lambda: NOW,
    )
