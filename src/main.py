"""FastAPI application entry point."""

import uvicorn

from src.application import create_app

app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    uvicorn.run("src.main:app", host="0.0.0.0", port=8000)


__all__ = ["app", "run"]
