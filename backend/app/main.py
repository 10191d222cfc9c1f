"""
FastAPI Main Application

Liquidity-mining treasury API for Uniswap V3 positions.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime

from app.config import settings
from app.api.schemas import ErrorResponse
from app.api.v1 import health, positions, program
from app.core.engine import get_service, set_service
from lp_treasury.errors import DataUnavailable, NotFound

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(positions.router, prefix="/api/v1", tags=["Positions"])
app.include_router(program.router, prefix="/api/v1", tags=["Program"])
app.include_router(health.router, prefix="/api/v1", tags=["Health"])


def _error(status_code: int, message: str, exc: Exception) -> JSONResponse:
    body = ErrorResponse(message=message, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error(404, "Not found", exc)


@app.exception_handler(DataUnavailable)
async def data_unavailable_handler(request: Request, exc: DataUnavailable):
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return _error(503, "Data unavailable", exc)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.API_TITLE,
        "version": settings.API_VERSION,
        "description": settings.API_DESCRIPTION,
        "docs": "/docs",
        "health": "/api/v1/health",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.on_event("startup")
async def startup_event():
    """Start price oracles and the reward scheduler"""
    logger.info("Starting %s v%s", settings.API_TITLE, settings.API_VERSION)
    service = get_service()
    service.open()
    logger.info(
        "Pool readers: %d, scheduler: %s",
        len(service.accountant.readers), "on" if service.scheduler else "off"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Stop background threads"""
    get_service().close()
    set_service(None)
    logger.info("Shut down %s", settings.API_TITLE)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
