from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from devicefarm.core.dispatcher import Dispatcher
from devicefarm.dependencies import get_dispatcher

router = APIRouter()


@router.get("/health")
async def health(dispatcher: Annotated[Dispatcher, Depends(get_dispatcher)]) -> dict:
    return {
        "status": "ok",
        "toolchains": dispatcher.context.toolchains.as_dict(),
        "operations": len(dispatcher.list_operations()),
    }
