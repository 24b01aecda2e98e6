from motor.motor_asyncio import AsyncIOMotorClient
from core.config import settings
from core.logger import setup_logger

logger = setup_logger("database")

class Database:
    _client: AsyncIOMotorClient = None
    _db = None

    @classmethod
    async def connect(cls):
        """Establish connection to MongoDB. Skipped when no URI is configured."""
        if not settings.mongo_uri:
            logger.warning("MONGO_URI not set, role mappings will only live in memory")
            return

        try:
            cls._client = AsyncIOMotorClient(settings.mongo_uri)
            cls._db = cls._client[settings.db_name]
            # Verify connection
            await cls._client.admin.command('ping')
            logger.info(f"Connected to MongoDB ({settings.db_name})")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise e

    @classmethod
    async def close(cls):
        """Close connection to MongoDB."""
        if cls._client:
            cls._client.close()
            cls._client = None
            cls._db = None
            logger.info("Closed MongoDB connection")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._db is not None

    @classmethod
    def get_db(cls):
        """Get the database instance."""
        if cls._db is None:
            raise ConnectionError("Database not initialized. Call connect() first.")
        return cls._db

    @classmethod
    def role_mappings(cls):
        return cls.get_db().role_mappings
