"""FastAPI application entry point for the Relationship OS API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from relationship_os.app.config import get_settings
from relationship_os.domain.schemas import HealthResponse
from relationship_os.infra.database import init_db
from relationship_os.services.errors import AppError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="Relationship OS API",
    lifespan=lifespan,
)

# CORS middleware: allow all origins in debug mode for LAN/IP access
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error rendering: every failure is {"error": "<message>"}
# ---------------------------------------------------------------------------

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from relationship_os.app.routes.auth import router as auth_router
from relationship_os.app.routes.invites import router as invites_router
from relationship_os.app.routes.quotes import router as quotes_router
from relationship_os.app.routes.subscriptions import router as subscriptions_router
from relationship_os.app.routes.seller import router as seller_router
from relationship_os.app.routes.customer import router as customer_router
from relationship_os.app.routes.chat import router as chat_router
from relationship_os.app.routes.ai import router as ai_router
from relationship_os.app.routes.payments import router as payments_router

app.include_router(auth_router)
app.include_router(invites_router)
app.include_router(quotes_router)
app.include_router(subscriptions_router)
app.include_router(seller_router)
app.include_router(customer_router)
app.include_router(chat_router)
app.include_router(ai_router)
app.include_router(payments_router)


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "relationship-os"}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "relationship_os.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
