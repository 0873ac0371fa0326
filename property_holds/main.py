from __future__ import annotations

import asyncio

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from property_holds.api.routes import router as api_router
from property_holds.core.config import get_settings
from property_holds.core.logging import setup_logging
from property_holds.services.db import init_db
from property_holds.services.scheduler import run_sweep_loop

settings = get_settings()
setup_logging(settings.logging.level, serialize=settings.logging.json_output)

app = FastAPI(title="Property Holds Service", version="0.1.0")

app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error for {method} {path}", method=request.method, path=request.url.path)
    return JSONResponse(status_code=500, content={"status": "error", "message": str(exc)})


@app.on_event("startup")
async def on_startup() -> None:
    init_db()
    interval = get_settings().hold_sweep_interval_seconds
    if interval > 0:
        app.state.sweep_task = asyncio.create_task(run_sweep_loop(interval))
        logger.info("Hold expiry sweep scheduled every {interval}s", interval=interval)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    task: asyncio.Task | None = getattr(app.state, "sweep_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def run() -> None:
    uvicorn.run("property_holds.main:app", host=settings.host, port=settings.port)
