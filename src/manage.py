"""Sales database management CLI.

Creates and drops the sales order tables on the configured database
(``SALES_DATABASE_URI``).

Usage:
    python src/manage.py setup-db                      # Create all tables
    python src/manage.py drop-db                       # Drop all tables
    python src/manage.py setup-db --database-uri URI   # Target another database
"""

import argparse
import sys

import structlog

logger = structlog.get_logger(__name__)


def _engine(database_uri=None):
    from sales.utils.db import create_sales_engine
    from sales.utils.settings import database_uri as configured_uri

    return create_sales_engine(database_uri or configured_uri())


def setup_database(database_uri=None):
    """Create the sales schema."""
    from sales.domain import sales
    from sales.utils.db import setup_db

    sales.init()
    engine = _engine(database_uri)
    setup_db(engine)
    logger.info("Sales schema ready", database=engine.url.render_as_string(hide_password=True))
    return engine


def drop_database(database_uri=None):
    """Drop the sales schema."""
    from sales.domain import sales
    from sales.utils.db import drop_db

    sales.init()
    engine = _engine(database_uri)
    drop_db(engine)
    logger.info("Sales schema dropped", database=engine.url.render_as_string(hide_password=True))
    return engine


def main(argv=None):
    parser = argparse.ArgumentParser(description="Sales database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("setup-db", "Create all database tables"), ("drop-db", "Drop all database tables")):
        command_parser = subparsers.add_parser(name, help=help_text)
        command_parser.add_argument(
            "--database-uri",
            help="SQLAlchemy database URI (default: SALES_DATABASE_URI)",
        )

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database(args.database_uri)
    elif args.command == "drop-db":
        drop_database(args.database_uri)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
