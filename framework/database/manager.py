from typing import Optional, Type
from sqlmodel import SQLModel
from framework.logging.logger import get_logger
from framework.repository.counters import CounterStore
from framework.repository.dialect import DocumentHandle, ModelHandle, SQLHandle
from .mongo_driver import MongoDriver
from .sql_driver import SQLDriver

logger = get_logger("database_manager")


class DatabaseManager:
    """Owns the configured backend driver and the process counter store.

    Database access stays disabled on the counter store until connect() has
    confirmed the backend, so early callers get degraded answers instead of
    racing a connection that is not ready yet.
    """
    _instance = None

    def __init__(self, settings):
        self.settings = settings
        self.counters = CounterStore()
        self.sql: Optional[SQLDriver] = None
        self.mongo: Optional[MongoDriver] = None
        if settings.is_relational:
            self.sql = SQLDriver(settings.DATABASE_URL, echo=settings.DB_ECHO)
        else:
            self.mongo = MongoDriver(settings.MONGODB_URI, settings.MONGODB_DB, settings.MONGODB_TIMEOUT_MS)

    @classmethod
    def get_instance(cls, settings=None):
        if cls._instance is None:
            if settings is None:
                from framework.config import settings as app_settings
                settings = app_settings
            cls._instance = cls(settings)
        return cls._instance

    @property
    def backend_name(self) -> str:
        return self.settings.DB_TYPE.lower()

    async def connect(self) -> bool:
        """Connect the configured backend; on failure stay in degraded mode."""
        self.counters.disable_db()
        try:
            if self.sql is not None:
                await self.sql.connect()
                if self.settings.DB_AUTO_CREATE:
                    await self.sql.create_all()
            else:
                await self.mongo.connect()
        except Exception as e:
            logger.error(f"{self.backend_name} connection failed, running in degraded mode: {str(e)}")
            return False

        self.counters.enable_db()
        logger.info(f"{self.backend_name} connected")
        return True

    async def disconnect(self):
        self.counters.disable_db()
        if self.sql is not None:
            await self.sql.disconnect()
        if self.mongo is not None:
            await self.mongo.disconnect()

    def handle_for(self, model: Type[SQLModel], collection_name: str) -> ModelHandle:
        """Build the handle pair for one entity from the configured driver."""
        if self.sql is not None:
            return ModelHandle(relational=SQLHandle(model, self.sql.session_factory))
        collection = self.mongo.get_collection(collection_name) if self.mongo is not None else None
        if collection is not None:
            return ModelHandle(document=DocumentHandle(collection))
        return ModelHandle()
