"""
Async MongoDB connection manager built on Motor.

Services receive the AsyncIOMotorDatabase handle and work with raw
collections; this module only owns the client lifecycle.

Example:
    from common.database import MongoDB

    db = MongoDB()
    await db.connect(uri="mongodb://localhost:27017", database_name="moodpulse")
    checkins = db.get_collection("moodCheckins")
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


def mask_uri(uri: str) -> str:
    """Strip credentials from a connection string before logging it."""
    return uri.split("@")[-1] if "@" in uri else uri


class MongoDB:
    """MongoDB connection manager - one client per database."""

    def __init__(self):
        self._client: Optional[AsyncIOMotorClient] = None
        self._database_name: Optional[str] = None
        self._connected: bool = False

    async def connect(
        self,
        uri: str,
        database_name: str,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        """
        Connect to MongoDB and verify the server answers.

        Datetimes come back timezone-aware (UTC) so window arithmetic can
        compare them with datetime.now(timezone.utc).

        Args:
            uri: MongoDB connection string
            database_name: Name of the database to use
            server_selection_timeout_ms: How long to wait for a server
        """
        logger.info(f"Connecting to MongoDB: {mask_uri(uri)}")
        logger.debug(f"Database name: {database_name}")

        try:
            self._client = AsyncIOMotorClient(
                uri,
                tz_aware=True,
                serverSelectionTimeoutMS=server_selection_timeout_ms,
            )
            self._database_name = database_name
            await self._client.admin.command("ping")
            self._connected = True
            logger.info(f"Successfully connected to MongoDB database: {database_name}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def disconnect(self) -> None:
        """Close the MongoDB connection."""
        if self._client:
            logger.info(f"Disconnecting from MongoDB database: {self._database_name}")
            self._client.close()
            self._client = None
            self._database_name = None
            self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if database is connected."""
        return self._connected

    @property
    def db(self) -> AsyncIOMotorDatabase:
        """Get the underlying Motor database instance."""
        if not self._client or not self._database_name:
            raise RuntimeError("Database not connected")
        return self._client[self._database_name]

    def get_collection(self, name: str):
        """
        Get a raw Motor collection.

        Args:
            name: Collection name

        Returns:
            AsyncIOMotorCollection instance
        """
        return self.db[name]
