from fastapi import FastAPI, APIRouter, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone
import logging

from . import __version__
from .config import CORS_ORIGINS, LOG_LEVEL
from .database import get_session, init_db, close_db
from .api.routes import pricing

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Package Pricing Engine", version=__version__)
api_router = APIRouter(prefix="/api")

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup and shutdown events
@app.on_event("startup")
async def startup():
    await init_db()
    logger.info("Database initialized")


@app.on_event("shutdown")
async def shutdown():
    await close_db()
    logger.info("Database connections closed")


@api_router.get("/")
async def root():
    return {"message": "Package Pricing Engine API", "status": "running", "version": __version__}


@api_router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Health check endpoint"""
    try:
        await session.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"error: {str(e)}"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "database": db_status,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


app.include_router(api_router)
app.include_router(pricing.router)
