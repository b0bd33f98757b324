"""Application entry point for the extraction API server."""

from pathlib import Path

import uvicorn

from chohyo.api.app import app
from chohyo.utils.config import load_config
from chohyo.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level, Path(config.log_file) if config.log_file else None)
    uvicorn.run(app, host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()
