"""
MongoDB Connection Manager

Manages MongoDB connections and provides database and collection access
for the EventFlow backend. Holds connections only; request data is never
cached here.
"""

from typing import Any, Dict, Optional

import pymongo
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from eventflow.utils.logger import get_logger

logger = get_logger(__name__)

USERS = "users"
EVENTS = "events"

# (keys, options) per collection
INDEXES = {
    USERS: [
        ("email", {"unique": True}),
    ],
    EVENTS: [
        ("creator_id", {}),
        ("attendee_ids", {}),
        ("date", {}),
        ([("created_at", pymongo.DESCENDING)], {}),
    ],
}


class MongoDBManager:
    """
    MongoDB Connection Manager

    Provides both sync and async MongoDB connections with connection pooling.
    The async client serves the API; the sync client serves scripts and
    index creation.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize MongoDB Manager

        Args:
            config: MongoDB configuration from config.yaml
        """
        self.config = config
        self.uri = config.get('uri', 'mongodb://localhost:27017')
        self.database_name = config.get('database', 'eventflow')

        # Connection pool settings
        self.max_pool_size = int(config.get('max_pool_size', 100))
        self.min_pool_size = int(config.get('min_pool_size', 10))

        self._sync_client: Optional[MongoClient] = None
        self._sync_db: Optional[Database] = None

        self._async_client: Optional[AsyncIOMotorClient] = None
        self._async_db: Optional[AsyncIOMotorDatabase] = None

        logger.info(f"MongoDB Manager initialized for database: {self.database_name}")

    def _client_options(self) -> Dict[str, Any]:
        return {
            'maxPoolSize': self.max_pool_size,
            'minPoolSize': self.min_pool_size,
            'serverSelectionTimeoutMS': 5000,
            'connectTimeoutMS': 10000,
            'socketTimeoutMS': 30000,
        }

    def connect_sync(self) -> MongoClient:
        """
        Create synchronous MongoDB connection

        Returns:
            MongoClient instance
        """
        if self._sync_client is None:
            try:
                self._sync_client = MongoClient(self.uri, **self._client_options())

                # Test connection
                self._sync_client.admin.command('ping')
                logger.info("✅ Synchronous MongoDB connection established")

                self._sync_db = self._sync_client[self.database_name]

                if self.config.get('auto_create_indexes', True):
                    self.create_indexes(self._sync_db)

            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"❌ Failed to connect to MongoDB: {e}")
                self._sync_client = None
                raise

        return self._sync_client

    def connect_async(self) -> AsyncIOMotorClient:
        """
        Create asynchronous MongoDB connection (for FastAPI)

        Returns:
            AsyncIOMotorClient instance
        """
        if self._async_client is None:
            self._async_client = AsyncIOMotorClient(self.uri, **self._client_options())
            self._async_db = self._async_client[self.database_name]
            logger.info("✅ Asynchronous MongoDB connection established")

        return self._async_client

    @property
    def db(self) -> Database:
        """Get synchronous database instance"""
        if self._sync_db is None:
            self.connect_sync()
        return self._sync_db

    @property
    def async_db(self) -> AsyncIOMotorDatabase:
        """Get asynchronous database instance"""
        if self._async_db is None:
            self.connect_async()
        return self._async_db

    def create_indexes(self, db: Database) -> None:
        """Create indexes for the users and events collections"""
        logger.info("📊 Creating MongoDB indexes...")

        for collection, indexes in INDEXES.items():
            for keys, options in indexes:
                db[collection].create_index(keys, **options)

        logger.info("✅ Indexes created successfully")

    async def create_indexes_async(self) -> None:
        """Create indexes through the async client"""
        for collection, indexes in INDEXES.items():
            for keys, options in indexes:
                await self.async_db[collection].create_index(keys, **options)

        logger.info("✅ Indexes created successfully (async)")

    async def ping(self) -> bool:
        """Ping the server through the async client"""
        await self.async_db.command('ping')
        return True

    def close(self):
        """Close all MongoDB connections"""
        if self._sync_client:
            self._sync_client.close()
            self._sync_client = None
            self._sync_db = None
            logger.info("🔒 Closed synchronous MongoDB connection")

        if self._async_client:
            self._async_client.close()
            self._async_client = None
            self._async_db = None
            logger.info("🔒 Closed asynchronous MongoDB connection")

    def test_connection(self) -> bool:
        """
        Test MongoDB connection

        Returns:
            True if connection successful, False otherwise
        """
        try:
            client = self.connect_sync()
            client.admin.command('ping')

            server_info = client.server_info()
            version = server_info.get('version', 'unknown')

            logger.info("✅ MongoDB connection test successful")
            logger.info(f"   Server version: {version}")
            logger.info(f"   Database: {self.database_name}")

            return True

        except Exception as e:
            logger.error(f"❌ MongoDB connection test failed: {e}")
            return False


# Singleton instance
_mongo_manager: Optional[MongoDBManager] = None


def get_mongo_manager(config: Optional[Dict[str, Any]] = None) -> MongoDBManager:
    """
    Get MongoDB Manager singleton instance

    Args:
        config: MongoDB configuration (required on first call)

    Returns:
        MongoDBManager instance
    """
    global _mongo_manager

    if _mongo_manager is None:
        if config is None:
            raise ValueError("MongoDB configuration required for first initialization")
        _mongo_manager = MongoDBManager(config)

    return _mongo_manager


def close_mongo_manager():
    """Close MongoDB Manager and all connections"""
    global _mongo_manager
    if _mongo_manager:
        _mongo_manager.close()
        _mongo_manager = None
