import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from app.core.errors import (
    InsightsError,
    InsufficientDataError,
    NotFoundError,
    RateLimitedError,
    UnknownToolError,
    UpstreamError,
)
from app.models.analytics import ToolMetadata, ToolResponse
from app.tools import handlers
from app.tools.handlers import ToolContext
from app.tools.schemas import (
    CompareProfilesArgs,
    CompetitiveAnalysisArgs,
    HashtagAnalysisArgs,
    ProfileAnalysisArgs,
    ProspectArgs,
)

logger = logging.getLogger(__name__)

Handler = Callable[[ToolContext, Any], Awaitable[BaseModel]]


class Tool:
    def __init__(self, name: str, description: str, args_model: Type[BaseModel], handler: Handler):
        self.name = name
        self.description = description
        self.args_model = args_model
        self.handler = handler

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.args_model.model_json_schema(),
        }


TOOLS: Dict[str, Tool] = {
    tool.name: tool
    for tool in (
        Tool(
            "analyze_instagram_profile",
            "Engagement metrics, best posting times and top hashtags of one profile",
            ProfileAnalysisArgs,
            handlers.analyze_profile,
        ),
        Tool(
            "compare_instagram_profiles",
            "Side-by-side metrics for several profiles and the engagement leader",
            CompareProfilesArgs,
            handlers.compare_profiles,
        ),
        Tool(
            "competitive_analysis",
            "Compare competitors against the brand account with SWOT labels and scores",
            CompetitiveAnalysisArgs,
            handlers.competitive_analysis,
        ),
        Tool(
            "analyze_hashtags",
            "Hashtag performance, trends and usage recommendations",
            HashtagAnalysisArgs,
            handlers.analyze_hashtag_performance,
        ),
        Tool(
            "prospect_clients",
            "Discover and score bars and restaurants as potential clients",
            ProspectArgs,
            handlers.prospect_clients,
        ),
    )
}


def list_tools() -> List[Dict[str, Any]]:
    return [tool.describe() for tool in TOOLS.values()]


async def call_tool(name: str, arguments: Optional[Dict[str, Any]], ctx: ToolContext) -> BaseModel:
    """Validate ``arguments`` against the tool's model and run its handler.

    Raises:
        UnknownToolError: If no tool is registered under ``name``.
        pydantic.ValidationError: If the arguments are invalid.
    """

    tool = TOOLS.get(name)
    if tool is None:
        raise UnknownToolError(f"Unknown tool: {name}")

    args = tool.args_model.model_validate(arguments or {})
    return await tool.handler(ctx, args)


async def execute(
    name: str, arguments: Optional[Dict[str, Any]], ctx: ToolContext
) -> Tuple[int, ToolResponse]:
    """Run a tool and wrap the outcome in the response envelope.

    Returns:
        The HTTP status code to answer with and the envelope.
    """

    started = time.perf_counter()
    status_code = 200
    data = None
    error = None

    try:
        result = await call_tool(name, arguments, ctx)
        data = result.model_dump(mode="json")
    except ValidationError as exc:
        status_code = 422
        error = _validation_message(exc)
    except InsightsError as exc:
        status_code = _status_for(exc)
        error = str(exc)
        logger.error("Tool %s failed: %s", name, exc)

    return status_code, ToolResponse(
        success=error is None,
        data=data,
        error=error,
        metadata=ToolMetadata(
            processing_time_ms=round((time.perf_counter() - started) * 1000),
            timestamp=datetime.now(timezone.utc),
        ),
    )


def _status_for(exc: InsightsError) -> int:
    if isinstance(exc, (UnknownToolError, NotFoundError)):
        return 404
    if isinstance(exc, InsufficientDataError):
        return 422
    if isinstance(exc, RateLimitedError):
        return 429
    if isinstance(exc, UpstreamError):
        return 502
    return 500


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "Invalid arguments: " + "; ".join(parts)
