import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from visadesk import __version__
from visadesk.errors import CaseNotFound, ConcurrentUpdateError, ErrorKind, RejectedUpdate
from visadesk.settings import API_DEBUG, API_HOST, API_PORT, LOG_LEVEL, settings

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="VisaDesk API",
    version=__version__,
    description="HTTP layer over the residence-case workflow: stage updates, queues and card custody.",
    debug=API_DEBUG,
)

# --- CORS ----------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

# --- Include Routers ----------------------------------------------------------
from .cases import router as cases_router  # noqa: E402
from .reference import router as reference_router  # noqa: E402
from .tasks import router as tasks_router  # noqa: E402

app.include_router(cases_router)
app.include_router(reference_router)
app.include_router(tasks_router)


# --- Error mapping ----------------------------------------------------------
# case-level gating is a conflict with the case's state; everything else is bad input
_CONFLICT_KINDS = {ErrorKind.CASE_TERMINAL, ErrorKind.CASE_ON_HOLD}


def _error_body(error: str, field, message: str) -> dict:
    return {"error": error, "field": field, "message": message}


@app.exception_handler(RejectedUpdate)
async def rejected_update_handler(request: Request, exc: RejectedUpdate):
    err = exc.error
    status = 409 if err.kind in _CONFLICT_KINDS else 422
    return JSONResponse(status_code=status, content=_error_body(err.kind.value, err.field, err.message))


@app.exception_handler(CaseNotFound)
async def case_not_found_handler(request: Request, exc: CaseNotFound):
    return JSONResponse(status_code=404, content=_error_body("case_not_found", None, str(exc)))


@app.exception_handler(ConcurrentUpdateError)
async def concurrent_update_handler(request: Request, exc: ConcurrentUpdateError):
    logger.warning(f"Rejected stale write: {exc}")
    return JSONResponse(status_code=409, content=_error_body("concurrent_update", None, str(exc)))


# ---------- health-check ----------
@app.get("/")
def root():
    return {"status": "ok", "msg": "VisaDesk API is alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=API_DEBUG)
