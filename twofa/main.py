import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from twofa.api.v1.two_factor import router as two_factor_router
from twofa.core.config import settings
from twofa.core.errors import MalformedInput, TwoFactorError

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TwoFactorError)
async def two_factor_error_handler(request: Request, exc: TwoFactorError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # no field names or pydantic internals in the response
    logger.debug("rejected request to %s: %s", request.url.path, exc.errors())
    err = MalformedInput("Malformed request: expected {action, code?, protectedAction?}")
    return JSONResponse(status_code=err.status_code, content={"error": err.to_dict()})


app.include_router(two_factor_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
