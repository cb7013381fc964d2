#!/usr/bin/env python3
"""
FastAPI Hook Gateway - HTTP entry point for GameCP billing hooks
The billing system's module shim forwards each hook invocation here
"""

import logging
import time
import json as _json
from contextlib import asynccontextmanager
from datetime import datetime as _dt, timezone as _tz

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
import uvicorn

from config import get_config
from utils.environment import get_environment_name, is_production_environment


class _JsonLogFormatter(logging.Formatter):
    """Single structured JSON log format for production"""
    def format(self, record):
        log_data = {
            'timestamp': _dt.fromtimestamp(record.created, _tz.utc).isoformat(),
            'level': record.levelname,
            'component': record.name,
            'message': record.getMessage(),
        }
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        return _json.dumps(log_data, default=str)


def configure_logging(level: str = 'INFO'):
    """JSON logs in production, plain text in development"""
    handler = logging.StreamHandler()
    if is_production_environment():
        handler.setFormatter(_JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logging.root.handlers = [handler]
    logging.root.setLevel(level)

    # SECURITY: keep bearer tokens out of HTTP client debug logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


configure_logging(get_config().server.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the billing database pool when the server stops"""
    logger.info("🚀 GameCP billing bridge starting")
    yield
    if get_config().database.url:
        import database
        try:
            database.close_connection_pool()
        except Exception as e:
            logger.error(f"❌ Cleanup error: {e}")
    logger.info("🛑 GameCP billing bridge stopped")


app = FastAPI(
    title="GameCP Billing Bridge",
    description="Provisioning, lifecycle and status hooks for GameCP game servers",
    version="1.4.0",
    lifespan=lifespan,
)

from api.routes import module_hooks  # noqa: E402

app.include_router(module_hooks.router, prefix="/api/v1", tags=["Module Hooks"])
logger.info(f"✅ Hook routes mounted at /api/v1 ({get_environment_name()})")


@app.get("/health")
def health():
    return {"status": "ok", "environment": get_environment_name(), "timestamp": int(time.time())}


# Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "timestamp": int(time.time())}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"❌ Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "timestamp": int(time.time())}
    )


# Development server
if __name__ == "__main__":
    server_config = get_config().server
    uvicorn.run(
        "fastapi_server:app",
        host=server_config.host,
        port=server_config.port,
        reload=False,
        log_level=server_config.log_level.lower()
    )
