"""Entry point for serving the HelpApp API.

Starts uvicorn on the application defined in ``helpapp_api.app.main``.
Host and port are read from the ``HOST`` and ``PORT`` environment
variables (defaults ``0.0.0.0`` and ``8000``).  Configuration such as
``JWT_SECRET_KEY`` and ``DATABASE_URL`` must be present in the
environment before this script starts.

uvicorn handles SIGINT and SIGTERM by shutting the application down
gracefully, which closes the database connection.

Usage:
    python run.py
"""
import asyncio
import os

from uvicorn import Config, Server


async def run_api() -> None:
    """Serve the API until the server is asked to stop."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    config = Config(
        app="helpapp_api.app.main:app",
        host=host,
        port=port,
        reload=False,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
    server = Server(config)
    await server.serve()


def main() -> None:
    asyncio.run(run_api())


if __name__ == "__main__":
    main()
