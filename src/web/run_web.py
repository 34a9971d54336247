"""
Run script for the content quality API.
Starts the Quart app under hypercorn.
"""
import asyncio
import argparse
import logging
import os

from hypercorn.config import Config as HypercornConfig
from hypercorn.asyncio import serve

from services.config import load_config
from services.database import Database
from services.logging import setup_logging

logger = logging.getLogger(__name__)


def init_database() -> None:
    """Initialize the content database tables."""
    config = load_config()
    db = Database(config.DATABASE_PATH)
    asyncio.run(db.init_tables())
    print(f"Database initialized at: {os.path.abspath(config.DATABASE_PATH)}")


def run_server(host: str = '0.0.0.0', port: int = 5000, debug: bool = False) -> None:
    """Run the web server."""
    from web.app import app

    logger.info(f"Starting content quality API on http://{host}:{port}")

    config = HypercornConfig()
    config.bind = [f"{host}:{port}"]
    config.use_reloader = debug
    config.accesslog = '-'
    config.errorlog = '-'

    asyncio.run(serve(app, config))


def main():
    parser = argparse.ArgumentParser(description='Content quality API')
    parser.add_argument('command', nargs='?', default='run',
                        choices=['run', 'init-db'],
                        help='Command to execute')
    parser.add_argument('--host', default='0.0.0.0',
                        help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=5000,
                        help='Port to bind to (default: 5000)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug mode')

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.debug else logging.INFO)

    if args.command == 'init-db':
        init_database()
    else:
        run_server(host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()
