import logging
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.api.deps import get_tool_context
from app.tools import registry
from app.tools.handlers import ToolContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/analysis")
async def analyze_instagram_profile(
    profile: str = Query(..., description="Instagram username (without @)"),
    posts_limit: int = Query(50, description="Maximum number of posts to analyze"),
    ctx: ToolContext = Depends(get_tool_context),
):
    logger.info(f"Analysis request for profile: {profile}")
    status_code, envelope = await registry.execute(
        "analyze_instagram_profile",
        {"username": profile, "posts_limit": posts_limit},
        ctx,
    )
    if envelope.success:
        logger.info(f"Analysis complete for {profile}")
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))
