"""
Loan Schedule API Application Factory
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .. import __version__
from ..config import get_config
from ..logging_config import setup_logging
from .auto_extend import router as auto_extend_router
from .loans import router as loans_router
from .products import router as products_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    app = FastAPI(
        title="Loan Schedule API",
        description="Repayment schedule generation for a lending ledger",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(products_router, prefix="/products", tags=["Products"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(auto_extend_router, prefix="/auto-extend", tags=["Auto-Extend"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "loan_schedule_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: str = None, port: int = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "loan_schedule.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        workers=config.api_workers if not debug else 1,
        log_level=config.log_level.lower()
    )
