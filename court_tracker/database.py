# database.py
import os
from databases import Database
from dotenv import load_dotenv
from sqlalchemy import MetaData, create_engine

load_dotenv()
# Holds the court catalog and user records only; live sessions never reach it
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./court_tracker.db")

database = Database(DATABASE_URL)
metadata = MetaData()
engine = create_engine(DATABASE_URL)


async def open_database() -> None:
    """Connect the async client and create any missing tables."""
    # Table definitions register on metadata at import
    import court_tracker.models  # noqa: F401

    await database.connect()
    metadata.create_all(bind=engine)


async def close_database() -> None:
    if database.is_connected:
        await database.disconnect()
