"""
Loan Simulator API Application Factory
"""

import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .. import __version__
from ..config import LoanSimulatorConfig, get_config
from ..logging_config import correlation_context, get_logger, log_action
from .users import router as auth_router
from .loans import router as loans_router


REQUEST_ID_HEADER = "X-Request-ID"

access_logger = get_logger("loan_simulator.api.access")


def create_app(config: Optional[LoanSimulatorConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    config = config or get_config()

    app = FastAPI(
        title="Bank Loan Simulator API",
        description="Loan requests, payment simulation and administrator review",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlate_requests(request: Request, call_next):
        """Tag logs with a per-request id and echo it back to the caller"""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        started = time.perf_counter()

        with correlation_context(request_id):
            response = await call_next(request)
            log_action(access_logger, "info", f"{request.method} {request.url.path} {response.status_code}",
                       action="http_request", resource=request.url.path,
                       extra={"status_code": response.status_code,
                              "duration_ms": round((time.perf_counter() - started) * 1000, 2)})

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
    app.include_router(loans_router, prefix="/api/loans", tags=["Loans"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "loan_simulator_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Bank Loan Simulator API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "auth": "/api/auth",
                "loans": "/api/loans",
            }
        }

    return app


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False) -> None:
    """Run the API with uvicorn"""
    uvicorn.run(create_app(), host=host, port=port, log_level="debug" if debug else "info")
