"""
FastAPI application entrypoint.

Run locally:  uvicorn medledger.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from medledger.api.routes import get_registry, router
from medledger.config import settings
from medledger.errors import RegistryError
from medledger.models.database import Base, engine

logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "Unauthorized": 403,
    "AlreadyExists": 409,
    "NotFound": 404,
    "InvalidArgument": 422,
    "OutOfRange": 404,
}

app = FastAPI(
    title="Medical Record Ledger API",
    description=(
        "Permissioned ledger of patient record references: admin-managed "
        "providers, patient-controlled consent, and an append-only list of "
        "content hashes per patient."
    ),
    version="1.0.0",
)

app.include_router(router, prefix="/api/v1")


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.code, 400),
        content={"error": exc.code, "detail": exc.reason},
    )


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    if not settings.ADMIN_ADDRESS:
        raise RuntimeError("ADMIN_ADDRESS must be set to bind the registry admin")
    get_registry().initialize(settings.ADMIN_ADDRESS)
