from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from devicefarm.core.dispatcher import Dispatcher
from devicefarm.dependencies import get_dispatcher
from devicefarm.schemas.operation import ToolCallRequest, ToolListResponse
from devicefarm.schemas.response import ToolResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("", response_model=ToolListResponse)
async def list_tools(
    dispatcher: Annotated[Dispatcher, Depends(get_dispatcher)],
) -> ToolListResponse:
    return ToolListResponse(tools=dispatcher.list_operations())


@router.post("/call", response_model=ToolResponse)
async def call_tool(
    body: ToolCallRequest,
    dispatcher: Annotated[Dispatcher, Depends(get_dispatcher)],
) -> ToolResponse:
    log.info("api.call_tool", tool=body.name)
    return await dispatcher.invoke(body.name, body.arguments)
