from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clearance.core.db import init_db
from clearance.core.log import get_logger
from clearance.router import ClearanceRouter, RequirementRouter, StudentRequirementRouter
from clearance.router import PermitRouter, StudentRouter, NotificationRouter
from clearance.router import audit_log_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Clearance API started")
    yield
    logger.info("Clearance API shutting down")


app = FastAPI(
    title="Clearance API",
    summary="Student clearance periods, requirement sign-offs and permit gating",
    openapi_url="/openapi.json",
    docs_url="/api/docs",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ClearanceRouter.router, prefix="/api/clearance", tags=["clearance"])
app.include_router(RequirementRouter.router, prefix="/api/requirements", tags=["requirements"])
app.include_router(StudentRequirementRouter.router, prefix="/api/student-requirements", tags=["student-requirements"])
app.include_router(PermitRouter.router, prefix="/api/permits", tags=["permits"])
app.include_router(StudentRouter.router, prefix="/api/students", tags=["students"])
app.include_router(NotificationRouter.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(audit_log_router.router, prefix="/api", tags=["auditlog"])


@app.get("/", tags=["Health"])
async def root():
    return {"status": "ok", "message": "Clearance API is running"}


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "ok"}
