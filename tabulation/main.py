"""
tabulation/main.py
FastAPI application: live scoring and tabulation for judged competitions
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tabulation.config.settings import settings
from tabulation.database import store_context
from tabulation.errors import register_exception_handlers
from tabulation.routes import router
from tabulation.routes.auth import limiter

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting tabulation service...")
    try:
        await store_context.init()
        logger.info("Store connected successfully")
    except Exception as e:
        logger.error(f"Failed to initialize store: {str(e)}")
        raise

    yield

    logger.info("Shutting down tabulation service...")
    await store_context.close()


app = FastAPI(
    title="Tabulation API",
    description="Live scoring and tabulation for judged competitions",
    version="1.0.0",
    lifespan=lifespan
)

# Attach rate limiter to the app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin for origin in settings.allowed_origins if origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok", "store": "connected" if store_context.initialized else "not initialized"}
