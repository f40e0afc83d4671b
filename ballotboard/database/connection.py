import logging
from datetime import datetime, timezone

from pymongo import MongoClient
from pymongo.database import Database

from ballotboard import config

logger = logging.getLogger(__name__)


class MongoConnector:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            if not config.MONGO_URI:
                raise ValueError("MONGO_URI not configured. Check your .env file.")
            if not config.MONGO_DB:
                raise ValueError("MONGO_DB not configured. Check your .env file.")
            cls._instance = super(MongoConnector, cls).__new__(cls)
            # Connecting is lazy; a dead server surfaces on the first query
            cls._instance.client = MongoClient(
                config.MONGO_URI,
                serverSelectionTimeoutMS=config.MONGO_TIMEOUT_MS,
                connectTimeoutMS=config.MONGO_TIMEOUT_MS,
                socketTimeoutMS=config.MONGO_TIMEOUT_MS,
            )
            cls._instance.db = cls._instance.client[config.MONGO_DB]
            logger.info(f"MongoDB client created for database: {config.MONGO_DB}")
        return cls._instance


def get_db() -> Database:
    """FastAPI dependency returning the application database."""
    return MongoConnector().db


def get_now() -> datetime:
    """FastAPI dependency for the request's notion of "now" (UTC)."""
    return datetime.now(timezone.utc)
