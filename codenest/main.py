"""
CodeNest API
Code execution, test-suite submissions and gamified progress
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorClient

from codenest import config
from codenest.analytics.router import router as analytics_router
from codenest.execution.piston import PistonClient
from codenest.execution.router import router as execution_router
from codenest.progress.database import create_progress_indexes
from codenest.progress.router import router as progress_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(levelname)-5s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = AsyncIOMotorClient(config.MONGO_URL)
    app.state.db = client[config.MONGO_DB_NAME]
    app.state.executor = PistonClient()
    await create_progress_indexes(app.state.db)
    logger.info("CodeNest API started (db=%s, sandbox=%s)", config.MONGO_DB_NAME, config.PISTON_API_URL)
    yield
    await app.state.executor.aclose()
    client.close()


app = FastAPI(title="CodeNest API", lifespan=lifespan)

# ==================== ROUTER REGISTRATION ====================
app.include_router(execution_router, prefix="/api")
app.include_router(progress_router, prefix="/api")
app.include_router(analytics_router, prefix="/api")


@app.get("/health")
async def health_check():
    return {
        "status": "OK",
        "message": "CodeNest API is running",
        "timestamp": datetime.utcnow().isoformat(),
    }


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run("codenest.main:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "5000")))
