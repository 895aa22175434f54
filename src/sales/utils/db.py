from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from sales.persistence.tables import metadata


def create_sales_engine(database_uri: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across the pool."""
    if database_uri.startswith("sqlite") and (database_uri == "sqlite://" or ":memory:" in database_uri):
        return create_engine(
            database_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_uri)


def setup_db(engine: Engine):
    """Setup database schema"""
    metadata.create_all(engine)


def drop_db(engine: Engine):
    """Drop database schema"""
    metadata.drop_all(engine)
