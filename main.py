"""
Condition Advisor - Symptom checker and condition knowledge service
"""

import os
import sys
import asyncio
import logging
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

# Configure logging - write to file (overwrite each run) and console
LOG_FILE = os.getenv("LOG_FILE", "server.log")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

handlers = []
console_handler = logging.StreamHandler()
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
handlers.append(console_handler)

if LOG_FILE:
    file_handler = logging.FileHandler(LOG_FILE, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers.append(file_handler)

logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, handlers=handlers)
logger = logging.getLogger("condition-advisor")

# Reduce logging verbosity for noisy modules
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
if os.getenv("APP_ENV", "development").lower() == "production":
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("tools").setLevel(logging.WARNING)
    logger.info("⚡ Production mode: Reduced logging for performance")

# Add project root to path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from core.config.app_config import get_app_config
from core.error_handling import AdvisorServiceError, structured_exception_handler
from app_lifespan import lifespan

config = get_app_config()

CORS_ORIGINS = ["*"]
SERVICE_HOST = config.api.host
SERVICE_PORT = config.api.port
SERVICE_NAME = "Condition Advisor Service"
SERVICE_VERSION = "1.0.0"
REQUEST_TIMEOUT_SECONDS = config.api.request_timeout_seconds


def safe_include_router(app, module_path, router_name, prefix=None, tags=None):
    """
    Safely load and include a router without crashing the server.

    If the import fails the server logs the error, records it in
    app._failed_routes and keeps running.

    Args:
        app: FastAPI application instance
        module_path: Dot-separated module path (e.g., "routes.diagnosis")
        router_name: Name of the router variable in the module (e.g., "router")
        prefix: URL prefix for the router (optional)
        tags: OpenAPI tags for the router (optional)

    Returns:
        Tuple of (success: bool, error_msg: str or None)
    """
    import importlib

    route_display = prefix if prefix else module_path

    try:
        module = importlib.import_module(module_path)
        router = getattr(module, router_name)
        app.include_router(router, prefix=prefix or "", tags=tags)
        logger.info(f"✅ Loaded route: {route_display}")
        return True, None
    except ImportError as e:
        error_msg = f"Import error in {module_path}: {str(e)}"
    except AttributeError as e:
        error_msg = f"Attribute error: {str(e)}"
    except Exception as e:
        error_msg = f"Unexpected error: {type(e).__name__}: {str(e)}"

    logger.error(f"❌ FAILED to load {route_display}: {error_msg}")
    app._failed_routes.append({'route': route_display, 'error': error_msg})
    return False, error_msg


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce request timeouts.

    Returns 504 Gateway Timeout if request exceeds the timeout limit.
    """

    def __init__(self, app, timeout: float = REQUEST_TIMEOUT_SECONDS):
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(self, request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⏱️ Request timeout ({self.timeout}s): {request.method} {request.url.path}")
            return JSONResponse(
                status_code=504,
                content={
                    "detail": "Request timeout",
                    "timeout_seconds": self.timeout,
                    "path": str(request.url.path),
                }
            )


# Create FastAPI app
app = FastAPI(
    title=SERVICE_NAME,
    description="Symptom diagnosis with cached condition and medication knowledge",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

# Initialize tracker for failed routes (for monitoring endpoint)
app._failed_routes = []

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestTimeoutMiddleware, timeout=REQUEST_TIMEOUT_SECONDS)

app.add_exception_handler(AdvisorServiceError, structured_exception_handler)
app.add_exception_handler(StarletteHTTPException, structured_exception_handler)
app.add_exception_handler(Exception, structured_exception_handler)

# ============================================================================
# INCLUDE ROUTERS SAFELY
# ============================================================================

logger.info("📂 Loading routers...")

safe_include_router(app, "routes.diagnosis", "router", tags=["Diagnosis"])

if app._failed_routes:
    logger.warning(f"⚠️  {len(app._failed_routes)} route(s) failed to load:")
    for failed_route in app._failed_routes:
        logger.warning(f"   - {failed_route['route']}: {failed_route['error']}")


# ============================================================================
# Health Endpoints
# ============================================================================

@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Basic health check endpoint, including the condition store."""
    store = getattr(request.app.state, "store", None)
    store_healthy = await store.health_check() if store is not None else False

    return {
        "status": "healthy" if store_healthy else "degraded",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "store": {
            "backend": type(store).__name__ if store is not None else None,
            "healthy": store_healthy,
        },
        "failed_routes": app._failed_routes,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=SERVICE_HOST,
        port=SERVICE_PORT,
        reload=config.api.reload,
    )
