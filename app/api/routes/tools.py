import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_scheduler, get_tool_context
from app.services.scheduler import FetchScheduler, SchedulerStats
from app.tools import registry
from app.tools.handlers import ToolContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def list_tools() -> List[Dict[str, Any]]:
    return registry.list_tools()


@router.get("/stats", response_model=SchedulerStats)
async def scheduler_stats(scheduler: FetchScheduler = Depends(get_scheduler)):
    return scheduler.stats()


@router.post("/{name}")
async def call_tool(
    name: str,
    arguments: Optional[Dict[str, Any]] = Body(None),
    ctx: ToolContext = Depends(get_tool_context),
):
    logger.info("Tool call: %s", name)
    status_code, envelope = await registry.execute(name, arguments, ctx)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))
