import logging

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from staffhub import models  # noqa: F401  registers every table on Base.metadata
from staffhub.api.v1.main import api_router, websocket_router
from staffhub.core.config import settings
from staffhub.core.database import Base, engine
from staffhub.core.exceptions import ChatError, ServerError
from staffhub.services.connection_manager import manager
from staffhub.services.websocket_cleanup_service import cleanup_inactive_sessions

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create all database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Storage error on {request.method} {request.url.path}")
    error = ServerError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(websocket_router, prefix="/ws")


@app.get("/")
async def read_root():
    return {"message": f"{settings.PROJECT_NAME} backend is running"}


# Initialize scheduler for background tasks
scheduler = AsyncIOScheduler()


@app.on_event("startup")
async def on_startup():
    if settings.WS_ENABLE_HEARTBEAT:
        scheduler.add_job(
            cleanup_inactive_sessions,
            'interval',
            seconds=settings.WS_CLEANUP_INTERVAL,
            args=[manager],
            id='websocket_cleanup',
            replace_existing=True
        )
        logger.info(f"WebSocket cleanup scheduler started (interval: {settings.WS_CLEANUP_INTERVAL}s, timeout: {settings.WS_SESSION_TIMEOUT}s)")
        if not scheduler.running:
            scheduler.start()
    else:
        logger.info("WebSocket heartbeat disabled (WS_ENABLE_HEARTBEAT=False)")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Server is shutting down...")

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    await manager.disconnect_all()


if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, ws="websockets")
