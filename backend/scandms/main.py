# backend/scandms/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from . import models
from .api import projects, documents, pages, search
from .config import settings
from .database import engine
from .errors import ScanDMSError, scandms_exception_handler
from .utils.logging import api_logger

# Create all tables (and the search index) on startup
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="ScanDMS API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ScanDMSError, scandms_exception_handler)

app.mount("/storage", StaticFiles(directory=str(settings.STORAGE_PATH)), name="storage")

# Include routers
app.include_router(projects.router)
app.include_router(documents.router)
app.include_router(pages.router)
app.include_router(search.router)

api_logger.info("ScanDMS API initialised", extra={"storage_path": str(settings.STORAGE_PATH)})


@app.get("/")
async def root():
    return {"message": "ScanDMS API is running"}
