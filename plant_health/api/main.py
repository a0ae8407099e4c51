"""Plant Health Monitor API.

Serves the three workspaces of the app over HTTP:
- Authentication (login, register, logout)
- User workspace (upload a leaf photo, run an analysis, own history)
- Admin workspace (all history across users, aggregate stats)
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plant_health import __version__, config
from plant_health.api.routes import analysis, auth, history, view
from plant_health.context import PlantHealthContext, create_context

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(context: Optional[PlantHealthContext] = None) -> FastAPI:
    """Build the FastAPI app.

    With no context, one is created at startup from the environment
    (SQLite/Postgres store, configured vision model) and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        owned = context is None
        if owned:
            logger.info("Creating plant health context...")
            app.state.context = create_context()
        else:
            app.state.context = context
        logger.info(f"Plant Health API ready (surface: {app.state.context.surface.value})")
        yield
        logger.info("Shutting down Plant Health API")
        if owned:
            app.state.context.close()

    app = FastAPI(
        title="Plant Health Monitor API",
        description="""
## Leaf photo diagnosis with per-user history

- `POST /v1/auth/login` / `POST /v1/auth/register` - start a session
- `POST /v1/analysis/image` - select a leaf photo
- `POST /v1/analysis/run` - run the AI health assessment
- `GET /v1/history` - past assessments (admins see everyone's)
- `GET /v1/view` - the active workspace and its data
""",
        version=__version__,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers with /v1 prefix
    app.include_router(auth.router, prefix="/v1")
    app.include_router(analysis.router, prefix="/v1")
    app.include_router(history.router, prefix="/v1")
    app.include_router(view.router, prefix="/v1")

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "service": "Plant Health Monitor API",
            "version": __version__,
            "docs": "/docs",
            "endpoints": {
                "auth": "/v1/auth",
                "analysis": "/v1/analysis",
                "history": "/v1/history",
                "view": "/v1/view",
            },
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        ctx: PlantHealthContext = app.state.context
        return {
            "status": "healthy",
            "accounts_loaded": ctx.registry.count(),
            "analyses_loaded": ctx.history.count(),
            "surface": ctx.surface.value,
            "analyzing": ctx.pipeline.is_loading,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "plant_health.api.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=True,
    )
