#!/usr/bin/env python3
"""
Startup script for the voice POS server.

Serves the JSON API, the relay WebSocket and the static pages.

Usage:
    # Run on the default port
    python run_server.py

    # Run with custom port
    python run_server.py --port 8001

    # Run with reload for development
    python run_server.py --reload
"""

import argparse
import os


def run_server(
    host: str = "0.0.0.0",
    port: int = 3000,
    reload: bool = False,
    database_url: str = None,
) -> None:
    """Run the voice POS application."""
    if database_url:
        os.environ["DATABASE_URL"] = database_url
    database_url = os.environ.get("DATABASE_URL", "sqlite:///./orders.db")

    print(f"\n{'=' * 50}")
    print("Voice POS Relay")
    print(f"Voice page:   http://localhost:{port}/")
    print(f"Cashier page: http://localhost:{port}/cashier.html")
    print(f"Relay:        ws://localhost:{port}/ws")
    print(f"Database:     {database_url}")
    print(f"{'=' * 50}\n")

    # Ensure data directory exists
    if database_url.startswith("sqlite:///./"):
        db_path = database_url.replace("sqlite:///./", "")
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    import uvicorn

    uvicorn.run(
        "voice_pos.main:app",
        host=host,
        port=port,
        reload=reload,
    )


def main():
    parser = argparse.ArgumentParser(
        description="Run the voice POS relay server"
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=int(os.environ.get("PORT", "3000")),
        help="Port to run on (default: 3000)",
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy database URL (overrides DATABASE_URL)",
    )
    parser.add_argument(
        "--reload",
        "-r",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()

    run_server(
        host=args.host,
        port=args.port,
        reload=args.reload,
        database_url=args.database_url,
    )


if __name__ == "__main__":
    main()
