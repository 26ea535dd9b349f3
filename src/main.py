"""FastAPI application entry point.

This module initialises the FastAPI app, configures logging and
registers the chat gateway routes.  The ``uvicorn`` ASGI server can
point to ``src.main:app`` to serve the application, or the module can be
run directly with ``python -m src.main``.
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .utils.logger import setup_logging
from .config.app_config import AppConfig, get_app_config
from .controllers.chat_controller import router as chat_router
from .controllers.socket_controller import router as socket_router
from .utils.error_handler import ChatError, chat_error_handler


def create_app(app_config: AppConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application."""
    app_config = app_config or get_app_config()
    setup_logging(app_config)

    app = FastAPI(title="Streaming Chat Gateway", version="0.1.0")

    # Development accepts any origin; elsewhere only the frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Errors raised before a response is committed become JSON bodies
    app.add_exception_handler(ChatError, chat_error_handler)

    app.include_router(chat_router)
    app.include_router(socket_router)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        logger.debug("Health check invoked")
        return {"status": "ok"}

    return app


# Create an application instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    config = get_app_config()
    uvicorn.run(
        "src.main:app",
        host=config.app_host,
        port=config.app_port,
        reload=config.app_debug,
        log_config=None,
    )
