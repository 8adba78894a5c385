import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware

from gem_ownership.config import get_settings
from gem_ownership.db.neo4j_client import close_driver
from gem_ownership.routers import assets, entities, ownership

try:
    settings = get_settings()
except Exception as e:
    logging.getLogger(__name__).error(f"Failed to load settings: {e}", exc_info=True)
    raise

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting GEM Ownership API...")
    try:
        logger.info(f"API version: {settings.api_version}")
        yield
    except Exception as e:
        logger.error(f"Error during startup: {e}", exc_info=True)
        raise
    finally:
        logger.info("Shutting down GEM Ownership API...")
        close_driver()


app = FastAPI(
    title="GEM Ownership API",
    description="Ownership graphs, portfolios and concentration analytics over GEM tracker data",
    version=settings.api_version,
    lifespan=lifespan,
)

# allow_credentials=True doesn't work together with wildcard origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
    max_age=600,
)

try:
    app.include_router(assets.router, prefix=f"/api/{settings.api_version}/assets", tags=["assets"])
    app.include_router(entities.router, prefix=f"/api/{settings.api_version}/entities", tags=["entities"])
    app.include_router(ownership.router, prefix=f"/api/{settings.api_version}/ownership", tags=["ownership"])
    logger.info("All routers registered successfully")
except Exception as e:
    logger.error(f"Failed to register routers: {e}", exc_info=True)
    raise


@app.get("/health")
async def health():
    return {"status": "ok", "version": settings.api_version}
