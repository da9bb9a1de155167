"""HTTP transport.

Serve with:
    devicefarm-api
    uvicorn devicefarm.main:app --host 127.0.0.1 --port 8765
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devicefarm.api import health, tools
from devicefarm.config import settings
from devicefarm.dependencies import get_dispatcher
from devicefarm.telemetry import configure_logging

configure_logging(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log = structlog.get_logger()
    dispatcher = get_dispatcher()  # probes toolchains once, at startup
    log.info(
        "Starting device farm API",
        environment=settings.environment,
        operations=len(dispatcher.list_operations()),
        **dispatcher.context.toolchains.as_dict(),
    )
    yield


app = FastAPI(
    title="Mobile Device Farm",
    version="0.1.0",
    lifespan=lifespan,
)

origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()] if settings.allowed_origins else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(tools.router, prefix="/tools", tags=["tools"])


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
