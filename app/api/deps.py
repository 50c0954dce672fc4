from functools import lru_cache

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.services.apify import ApifyClient, InstagramDataSource
from app.services.scheduler import FetchScheduler
from app.tools.handlers import ToolContext


def get_data_source(settings: Settings = Depends(get_settings)) -> InstagramDataSource:
    return ApifyClient.from_settings(settings)


@lru_cache
def get_scheduler() -> FetchScheduler:
    settings = get_settings()
    return FetchScheduler(
        delay_seconds=settings.request_delay_seconds,
        max_requests_per_hour=settings.max_requests_per_hour,
    )


def get_tool_context(
    source: InstagramDataSource = Depends(get_data_source),
    scheduler: FetchScheduler = Depends(get_scheduler),
    settings: Settings = Depends(get_settings),
) -> ToolContext:
    return ToolContext(source=source, settings=settings, scheduler=scheduler)
