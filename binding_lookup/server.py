"""
Server runner for the Binding Lookup REST API.
"""

import uvicorn
from .config import get_config
from .logging_config import get_logger, setup_logging


def run_server(
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
    workers: int = 1
):
    """
    Run the FastAPI server.

    Args:
        host: Host to bind to
        port: Port to bind to
        reload: Enable auto-reload for development
        workers: Number of worker processes
    """
    config = get_config()
    setup_logging(config.logging)

    logger = get_logger(__name__)
    logger.info("Starting Binding Lookup API server on %s:%d", host, port)

    uvicorn.run(
        "binding_lookup.api.rest_api:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=config.logging.level.lower(),
        access_log=True
    )
