# ------------------------------
# Store Reports API
# uvicorn storereports.main:app --reload
# ------------------------------
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storereports.api import reports, stores, summary, templates
from storereports.core.config import settings
from storereports.core.errors import ReportEngineError
from storereports.db.session import DATABASE_URL, init_db
from storereports.routes.sessions import router as sessions_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("starting %s %s (database: %s)", settings.app_name, settings.version, DATABASE_URL.split(":", 1)[0])
    init_db()
    yield
    logger.info("shutting down")


app = FastAPI(
    title=settings.app_name,
    description="Template-driven store reports: authoring, guided answer collection, submission",
    version=settings.version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReportEngineError)
async def report_engine_error_handler(request: Request, exc: ReportEngineError):
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


app.include_router(templates.router, prefix=settings.api_prefix)
app.include_router(stores.router, prefix=settings.api_prefix)
app.include_router(reports.router, prefix=settings.api_prefix)
app.include_router(sessions_router, prefix=settings.api_prefix)
app.include_router(summary.router, prefix=settings.api_prefix)


@app.get("/health")
def health_check():
    return {"status": "ok", "version": settings.version}


@app.get("/")
def root():
    return {"message": "API is running. Go to /docs for Swagger UI."}
