import os
import asyncio
from prometheus_client import Counter, Gauge, start_http_server
from sqlalchemy import text
import logging

logger = logging.getLogger(__name__)

METRICS_PORT = int(os.getenv('METRICS_PORT', '8001'))
DB_STARTUP_RETRIES = int(os.getenv('DB_STARTUP_RETRIES', '3'))
DB_STARTUP_RETRY_DELAY = float(os.getenv('DB_STARTUP_RETRY_DELAY', '3'))

ENGINE_OPERATIONS = Counter(
    'bumpin_engine_operations_total',
    'Relationship and presence engine operations by outcome',
    ['operation', 'outcome'],
)
SYNC_ATTACHMENTS = Gauge('bumpin_sync_attachments', 'Active sync poller attachments')
SYNC_FETCHES = Counter('bumpin_sync_fetches_total', 'Sync poller fetches started')
SYNC_FETCH_FAILURES = Counter('bumpin_sync_fetch_failures_total', 'Sync poller fetches that failed')
SYNC_SKIPPED_TICKS = Counter('bumpin_sync_skipped_ticks_total', 'Sync poller ticks skipped while a fetch was outstanding')


def init_metrics(port: int = METRICS_PORT):
    """Initialize Prometheus metrics server"""
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except OSError as e:
        logger.warning(f'Prometheus start failed: {e}')


async def database_startup(retries: int = DB_STARTUP_RETRIES, retry_delay: float = DB_STARTUP_RETRY_DELAY) -> bool:
    """Check store connectivity with retries; never blocks the app from starting."""
    from .models import engine

    for attempt in range(retries):
        try:
            logger.info(f"Attempting to connect to the database (attempt {attempt + 1}/{retries})")
            async with engine.connect() as conn:
                await conn.execute(text('SELECT 1'))
            logger.info("Database connected successfully")
            return True
        except Exception as e:
            logger.warning(f'Database startup attempt {attempt + 1} failed: {e}')
            if attempt < retries - 1:
                logger.info(f"Retrying database connection in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error("Failed to connect to the database after all retries")
    return False


async def shutdown_connections():
    """Gracefully shutdown all connections"""
    from .models import engine

    logger.info("Shutting down connections...")
    try:
        await engine.dispose()
        logger.info("Database engine disposed")
    except Exception as e:
        logger.error(f"Error disposing database engine: {e}")
