# jsoncsv/main.py
import logging
import os
import sys

from fastapi import FastAPI
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from . import api
from . import config
from .models import engine, safe_init_database

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.info(f"Python version: {sys.version}")

app = FastAPI(title="JSON to CSV Converter")

app.include_router(api.router, prefix="/api", tags=["api"])

# Mount static files
app.mount("/static", StaticFiles(directory=config.STATIC_DIR), name="static")


@app.get("/")
async def read_root():
    return FileResponse(os.path.join(config.TEMPLATES_DIR, "index.html"))


@app.on_event("startup")
async def startup_event():
    logger.info("Starting application initialization...")
    config.ensure_storage_dirs()
    safe_init_database(engine)
    logger.info("Database ready")


def run():
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
