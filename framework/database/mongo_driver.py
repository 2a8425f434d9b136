from motor.motor_asyncio import AsyncIOMotorClient
from .base import BaseDatabaseDriver

class MongoDriver(BaseDatabaseDriver):
    """Document backend (MongoDB) through motor; the client connects lazily."""

    def __init__(self, uri: str, db_name: str, timeout_ms: int = 5000):
        self.uri = uri
        self.db_name = db_name
        self.client = AsyncIOMotorClient(uri, serverSelectionTimeoutMS=timeout_ms)

    async def connect(self):
        await self.client.admin.command("ping")

    async def disconnect(self):
        if self.client:
            self.client.close()

    def get_database(self):
        return self.client[self.db_name]

    def get_collection(self, name: str):
        return self.get_database()[name]
