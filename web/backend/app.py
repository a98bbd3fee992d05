#!/usr/bin/env python3
"""
LobbyMatch API - FastAPI Application

Ranks lobbying firms for a client profile, narrates the ranking and
generates pitch memos through a staged, streamed LLM pipeline.

Usage:
    python -m web.backend.app

Then open:
    - http://localhost:8080/docs - API Documentation (Swagger UI)
    - http://localhost:8080/redoc - Alternative API Documentation
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import LobbyMatchError
from .config import get_config
from .exceptions import (
    ServiceException,
    service_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    general_exception_handler
)
from .rate_limit import add_rate_limit_handlers
from .routers import (
    match_router,
    memo_router,
    catalog_router,
    compliance_router
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="LobbyMatch API",
    description="Lobbying firm matching and pitch memo generation",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure rate limiting
add_rate_limit_handlers(app)

# Register exception handlers
app.add_exception_handler(ServiceException, service_exception_handler)
app.add_exception_handler(LobbyMatchError, service_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Include routers
app.include_router(match_router)
app.include_router(memo_router)
app.include_router(catalog_router)
app.include_router(compliance_router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "lobbymatch-api"}


def main():
    """Run the web server."""
    import uvicorn

    config = get_config()
    logger.info(f"Starting LobbyMatch API on {config.web.host}:{config.web.port}")
    logger.info(f"API Docs: http://{config.web.host}:{config.web.port}/docs")

    uvicorn.run(
        "web.backend.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
