"""calcdoc FastAPI application entry point."""

from datetime import UTC, datetime

from fastapi import FastAPI
from pydantic import BaseModel

from calcdoc import __version__
from calcdoc.api.errors import register_exception_handlers
from calcdoc.api.routes import router
from calcdoc.config import CalcdocConfig, load_config


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    time: str
    version: str


def create_app(config: CalcdocConfig | None = None) -> FastAPI:
    """Create the calcdoc API application.

    Args:
        config: Configuration to use. Loaded from the environment if omitted.

    Returns:
        Configured FastAPI app.
    """
    app = FastAPI(
        title="calcdoc API",
        description="Parse and calculate literate calculation documents",
        version=__version__,
    )
    app.state.config = config if config is not None else load_config()
    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        """Health check endpoint.

        Returns:
            HealthResponse with status, current time, and version.
        """
        return HealthResponse(
            status="ok",
            time=datetime.now(UTC).isoformat(),
            version=__version__,
        )

    return app


app = create_app()
