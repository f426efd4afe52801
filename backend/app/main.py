import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.database import create_all
from app.core.exceptions import BusinessRuleViolation, NotFoundError, TaskflowError, ValidationError
from app.core.logging import configure_logging
from app.core.timeutils import utcnow
from app.routers import tasks
from app.schemas.error import ErrorResponse

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tasks.router)


def _error_body(request: Request, status: int, error: str, message: str, errors=None) -> JSONResponse:
    body = ErrorResponse(
        timestamp=utcnow(),
        status=status,
        error=error,
        message=message,
        path=request.url.path,
        errors=errors,
    )
    return JSONResponse(status_code=status, content=body.model_dump(mode="json", exclude_none=True))


@app.exception_handler(TaskflowError)
async def taskflow_error_handler(request: Request, exc: TaskflowError):
    if isinstance(exc, NotFoundError):
        logger.error("Not found: %s", exc.message)
        return _error_body(request, 404, "Not Found", exc.message, exc.details or None)
    if isinstance(exc, ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return _error_body(request, 400, "Validation Failed", exc.message, exc.details or None)
    if isinstance(exc, BusinessRuleViolation):
        logger.warning("Business rule violation: %s", exc.message)
        return _error_body(request, 400, "Business Rule Violation", exc.message, exc.details or None)
    logger.error("Unhandled domain error: %s", exc.message)
    return _error_body(request, 500, "Internal Server Error", exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error: %s", exc.errors())
    field_errors = {
        ".".join(str(part) for part in err["loc"] if part != "body"): err["msg"]
        for err in exc.errors()
    }
    return _error_body(
        request, 422, "Validation Failed",
        "Input validation failed. Check 'errors' field for details.",
        field_errors,
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error occurred")
    return _error_body(
        request, 500, "Internal Server Error",
        "An unexpected error occurred. Please try again later.",
    )


@app.on_event("startup")
async def startup():
    await create_all()

@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} is running"}

def run():
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.API_PORT)
