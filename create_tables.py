import sys
import os

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from lendfi.config import settings
from lendfi.database import Base, Database
from lendfi.logging_config import configure_logging


def create_tables(url: str = None):
    """Create every table for the configured database."""
    database = Database(url or settings.DATABASE_URL)
    print(f"Creating tables on {database.url} ...")
    try:
        database.create_all()
    finally:
        database.dispose()

    print("Tables ready:")
    for table in sorted(Base.metadata.tables):
        print(f"   - {table}")


if __name__ == "__main__":
    configure_logging()
    create_tables()
