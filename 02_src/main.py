"""Main entry point for School Chat Core."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")

    # Imported after .env is loaded so configuration sees it
    from chat_core.api import create_fastapi_app
    from chat_core.config import DEFAULT_LOG_PATH
    from chat_core.logging_config import setup_logging

    setup_logging(os.getenv("LOG_LEVEL", "INFO"), str(DEFAULT_LOG_PATH))

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))

    app = create_fastapi_app()

    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
