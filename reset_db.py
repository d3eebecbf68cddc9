import asyncio
import logging
import os
import sys

# Aggiungi backend/ alla PYTHONPATH per importare app.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.config import settings
from app.core.database import engine
from app.models import Base

logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger("reset_db")


async def reset():
    if settings.is_production:
        raise SystemExit("reset_db non può essere eseguito in produzione")

    logger.info("Connessione al database, eliminazione tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("Tabelle eliminate. Creazione nuove tabelle (%d)...", len(Base.metadata.tables))
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Database resettato con successo!")

if __name__ == "__main__":
    asyncio.run(reset())
