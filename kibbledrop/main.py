# kibbledrop/main.py
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from kibbledrop.api import create_app
from kibbledrop.data.database import Base, engine, init_db
from kibbledrop.utils.logging import get_logger
from kibbledrop.utils.settings import UPLOAD_DIR

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database...")
    init_db(engine)
    logger.info(f"Tables ready: {sorted(Base.metadata.tables.keys())}")
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    yield
    engine.dispose()
    logger.info("Database engine disposed")


app = create_app(lifespan=lifespan)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
