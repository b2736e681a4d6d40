"""
FastAPI application definition.

This module creates and configures the FastAPI application instance,
including middleware, exception handlers, and router registration.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from semsearch import __version__
from semsearch.api.routes import router
from semsearch.core.config import settings
from semsearch.core.exceptions import ConfigurationError, InvalidInputError
from semsearch.core.schemas import ErrorDescriptor

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Semantic Search API",
    description="API for semantic retrieval over indexed documents",
    version=__version__,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(
        status_code=422,
        content={"error": ErrorDescriptor.from_exception(exc).model_dump()},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": ErrorDescriptor.from_exception(exc).model_dump()},
    )


# Register API routes
app.include_router(router)


@app.get("/ping")
async def ping():
    """Liveness check endpoint."""
    return {"message": "pong"}
