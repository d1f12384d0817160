"""Main FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plotter import __version__
from plotter.config import settings
from plotter.errors import register_exception_handlers
from plotter.middleware.rate_limit import setup_rate_limiting
from plotter.middleware.request_id import RequestIdMiddleware
from plotter.auth import routes as auth_routes
from plotter.data.entries import routes as entry_routes
from plotter.data.balances import routes as balance_routes
from plotter.recurrence import routes as occurrence_routes
from plotter.projection import routes as projection_routes

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Create FastAPI app
app = FastAPI(
    title="Expense Plotter API",
    description="Recurring income and expense entries with balance projection",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestIdMiddleware)

register_exception_handlers(app)
setup_rate_limiting(app)

# Include routers
app.include_router(auth_routes.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["Auth"])
app.include_router(entry_routes.router, prefix=f"{settings.API_V1_PREFIX}/entries", tags=["Entries"])
app.include_router(occurrence_routes.router, prefix=f"{settings.API_V1_PREFIX}/occurrences", tags=["Occurrences"])
app.include_router(balance_routes.router, prefix=f"{settings.API_V1_PREFIX}/starting-balance", tags=["Starting Balance"])
app.include_router(projection_routes.router, prefix=f"{settings.API_V1_PREFIX}/projection", tags=["Projection"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Expense Plotter API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "plotter.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.APP_ENV == "development",
    )
