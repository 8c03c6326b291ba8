# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and index management.
"""

import os
import logging
from typing import Dict, Optional, Any
from pymongo import MongoClient, ASCENDING, GEOSPHERE
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

CAMPS = "camps"
REFUGEES = "refugees"


class MongoDBService:
    """MongoDB service with lazy connection and pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 max_pool_size: int = None, server_selection_timeout_ms: int = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/relief_camps_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'relief_camps_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = max_pool_size or int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = server_selection_timeout_ms or int(
            os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000')
        )

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @classmethod
    def from_settings(cls, settings) -> "MongoDBService":
        """Build the service from application Settings."""
        return cls(
            settings.mongodb_uri,
            settings.mongodb_database,
            max_pool_size=settings.mongodb_max_pool_size,
            server_selection_timeout_ms=settings.mongodb_server_selection_timeout_ms
        )

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    @staticmethod
    def to_object_id(doc_id: str) -> Optional[ObjectId]:
        """Convert a string ID to ObjectId, or None when malformed."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            return None

    # Index Management

    def create_indexes(self) -> None:
        """Create indexes for camps and refugees."""
        try:
            logger.info("Creating MongoDB indexes...")

            camps = self.get_collection(CAMPS)
            camps.create_index("name", unique=True)
            camps.create_index([("location", GEOSPHERE)])
            camps.create_index([("status", ASCENDING), ("currentOccupancy", ASCENDING)])
            camps.create_index("connectedCamps")

            refugees = self.get_collection(REFUGEES)
            refugees.create_index([("location", GEOSPHERE)])
            refugees.create_index([("status", ASCENDING), ("createdAt", ASCENDING)])
            refugees.create_index("assignedCamp")

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise
