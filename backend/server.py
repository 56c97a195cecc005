"""Online Tracker Backend — entry point.

Session store, daily rollups, expiry sweeper and the stats bridge API
polled by the reporting client.
"""
from contextlib import asynccontextmanager
from pathlib import Path
import asyncio
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, APIRouter
from starlette.middleware.cors import CORSMiddleware

# Load env before anything else
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / ".env")

from config.settings import get_settings
from config.validators import validate_startup_config
from core.logging_config import setup_logging
from core.database import init_indexes, close_db, ping
from api.stats_routes import router as stats_router
from governance.retention import retention_loop
from tracking.sweeper import sweeper_loop

VERSION = "0.1.0"

# ---- Setup logging ----
setup_logging()
logger = logging.getLogger(__name__)


# ---- Lifespan ----
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Online Tracker BE starting — env=%s", settings.ENV)
    validate_startup_config(settings)
    await init_indexes()

    tasks = []
    if settings.SWEEPER_ENABLED:
        tasks.append(asyncio.create_task(sweeper_loop(), name="session-sweeper"))
    if settings.RETENTION_ENABLED:
        tasks.append(asyncio.create_task(retention_loop(), name="retention"))
    logger.info("Online Tracker BE ready — %d background task(s)", len(tasks))
    yield

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await close_db()
    logger.info("Online Tracker BE shutdown complete")


# ---- App ----
app = FastAPI(
    title="Online Tracker",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

api_router = APIRouter(prefix="/api")


# ---- Health ----
@api_router.get("/health")
async def health():
    settings = get_settings()
    db_ok = await ping()
    return {
        "status": "ok" if db_ok else "degraded",
        "env": settings.ENV,
        "version": VERSION,
        "db_reachable": db_ok,
    }


api_router.include_router(stats_router)
app.include_router(api_router)
