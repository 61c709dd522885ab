import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from sitecheck.config import settings
from sitecheck.database import create_tables, async_session
from sitecheck.dependencies import verify_api_key
from sitecheck.seed import seed_data
from sitecheck.routers.auth import router as auth_router
from sitecheck.routers.checklists import router as checklists_router
from sitecheck.routers.drafts import router as drafts_router
from sitecheck.routers.sites import router as sites_router
from sitecheck.routers.assignments import router as assignments_router
from sitecheck.routers.dashboard import router as dashboard_router
from sitecheck.routers.reports import router as reports_router
from sitecheck.routers.users import router as users_router
from sitecheck.services.storage import public_marker, storage_directory
from sitecheck.utils.exceptions import register_exception_handlers

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    async with async_session() as session:
        await seed_data(session)
    logger.info("Storage backend: %s, bucket %s", settings.storage_backend, settings.storage_bucket)
    yield


app = FastAPI(
    title="SiteChecklist API",
    description="API de checklist de vistoria de sites de telecomunicações",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

_api_key_dep = [Depends(verify_api_key)]

app.include_router(auth_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(checklists_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(drafts_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(sites_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(assignments_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(dashboard_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(reports_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(users_router, prefix="/api/v1", dependencies=_api_key_dep)

if settings.storage_backend == "filesystem":
    # public photo URLs resolve here
    _photo_dir = os.path.join(storage_directory(settings), settings.storage_bucket)
    os.makedirs(_photo_dir, exist_ok=True)
    app.mount(public_marker(settings.storage_bucket).rstrip("/"), StaticFiles(directory=_photo_dir), name="photos")


@app.get("/health")
async def health_check():
    return {"status": "success", "data": {"service": "site-checklist-api", "version": VERSION}, "message": None}
