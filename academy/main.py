"""
FastAPI application entry point for the academy backend.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from academy import __version__
from academy.config import get_settings
from academy.errors import AcademyError
from academy.api.routes import router as api_router

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    settings = get_settings()
    logger.info("Starting academy backend")
    if not settings.supabase_configured:
        logger.warning("Supabase credentials not set (SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)")
    if not settings.youtube_configured:
        logger.warning("YOUTUBE_API_KEY not set; playlist sync will fail")

    yield

    # Shutdown
    logger.info("Shutting down academy backend")


# Create FastAPI app
app = FastAPI(
    title="Academy",
    description="Corporate training backend: YouTube playlist sync and admin operations",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
)


@app.exception_handler(AcademyError)
async def academy_error_handler(request: Request, exc: AcademyError):
    """Render academy errors as {"error": message}."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# Mount API routes
app.include_router(api_router, prefix="/api")


def main():
    """Run the application with uvicorn."""
    import uvicorn
    settings = get_settings()

    uvicorn.run(
        "academy.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
