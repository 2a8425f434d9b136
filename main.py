import asyncio
from framework.config import settings
from framework.database.manager import DatabaseManager
from framework.logging.logger import LogConfig, get_logger
import apps.models  # noqa: F401  (registers tables on SQLModel.metadata)
from apps.repositories import get_dashboard_service

logger = get_logger("main")


async def startup() -> DatabaseManager:
    """Initialize logging and connect the configured backend (degraded mode on failure)."""
    LogConfig.setup_logging()
    manager = DatabaseManager.get_instance(settings)
    connected = await manager.connect()
    if not connected:
        logger.warning("No backend reachable; aggregates will serve approximate counters")
    return manager


async def shutdown(manager: DatabaseManager):
    await manager.disconnect()


async def main():
    manager = await startup()
    try:
        overview = await get_dashboard_service(manager).get_overview()
        logger.info(f"Dashboard overview: {overview}")
    finally:
        await shutdown(manager)


if __name__ == "__main__":
    asyncio.run(main())
