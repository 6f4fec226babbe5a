#!/usr/bin/env python3
"""
Maintenance command line for the real-estate catalog service.
Creates the document tables, repairs missing property locations and issues session tokens.
"""

import asyncio
import sys
import argparse
import logging

from realestate.config import get_settings
from realestate.database import create_engine, create_tables, drop_tables
from realestate.services.auth import create_session_token
from realestate.services.container import build_container

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class MaintenanceManager:
    """Runs one-off maintenance tasks against the configured store."""

    def __init__(self):
        self.settings = get_settings()

    async def init_db(self) -> None:
        """Create the document tables."""
        engine = create_engine(self.settings)
        try:
            await create_tables(engine)
        finally:
            await engine.dispose()
        logger.info("Database initialized")

    async def reset_db(self) -> None:
        """Drop and recreate the document tables (development and testing only)."""
        engine = create_engine(self.settings)
        try:
            await drop_tables(engine, self.settings)
            await create_tables(engine)
        finally:
            await engine.dispose()
        logger.info("Database reset completed")

    async def repair_locations(self) -> None:
        """Geocode every property without coordinates and print the report."""
        container = await build_container(self.settings)
        try:
            report = await container.geolocation.repair_all_missing()
        finally:
            await container.aclose()

        print(report.model_dump_json(indent=2))

    def issue_token(self, user_id: str) -> None:
        """Print a session token for local testing."""
        print(create_session_token(user_id, self.settings))


def main():
    """Main CLI interface for maintenance tasks."""
    parser = argparse.ArgumentParser(description="Real-estate catalog maintenance")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create the document tables")

    reset_parser = subparsers.add_parser("reset-db", help="Reset database (development only)")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm database reset")

    subparsers.add_parser("repair-locations", help="Geocode properties missing coordinates")

    token_parser = subparsers.add_parser("issue-token", help="Issue a session token for a user")
    token_parser.add_argument("user_id", help="User id to sign in as")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    manager = MaintenanceManager()

    try:
        if args.command == "init-db":
            asyncio.run(manager.init_db())

        elif args.command == "reset-db":
            if not args.confirm:
                print("Database reset requires --confirm flag")
                return
            asyncio.run(manager.reset_db())

        elif args.command == "repair-locations":
            asyncio.run(manager.repair_locations())

        elif args.command == "issue-token":
            manager.issue_token(args.user_id)

    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
