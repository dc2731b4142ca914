import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api_v1.endpoints import activities as activities_router
from backend.app.api_v1.endpoints import analytics as analytics_router
from backend.app.api_v1.endpoints import auth as auth_router
from backend.app.api_v1.endpoints import categories as categories_router
from backend.app.api_v1.endpoints import ws as ws_router
from backend.app.core.db import init_db
from backend.app.core.settings import settings

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up {settings.PROJECT_NAME}...")
    try:
        await init_db()
        logger.info("Database schema initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
    yield
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Collects focus activity from browser and desktop emitters and serves productivity analytics.",
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- API Router for v1 ---
api_v1_router = APIRouter(prefix=settings.API_V1_STR)

api_v1_router.include_router(auth_router.router, prefix="/auth", tags=["Authentication"])
api_v1_router.include_router(activities_router.router, prefix="/activities", tags=["Activities"])
api_v1_router.include_router(analytics_router.router, prefix="/analytics", tags=["Analytics"])
api_v1_router.include_router(categories_router.router, prefix="/categories", tags=["Categories"])
api_v1_router.include_router(ws_router.router, prefix="/ws", tags=["Realtime"])

# Include the v1 router in the main app
app.include_router(api_v1_router)


@app.get("/health", tags=["Root"])
async def health_check():
    return {"status": "ok", "version": settings.VERSION}


# Basic root endpoint
@app.get("/", tags=["Root"])
async def read_root():
    return {"message": f"Welcome to the {settings.PROJECT_NAME}. See {settings.API_V1_STR}/docs for documentation."}


if __name__ == "__main__":
    import uvicorn
    # This is for development purposes. For production, use a process manager like Gunicorn.
    logger.info("Starting Uvicorn server for development...")
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
