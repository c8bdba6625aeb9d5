import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import db, ensure_indexes, utcnow
from ratelimit import limiter
from uploads import UploadError

import admin
import auth
import blog
import contact
import notifications
import projects
import public
import seo
import slideshow

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes()
    except PyMongoError as e:
        logger.error(f"Could not ensure database indexes: {e}")
    yield


app = FastAPI(title="Interior Design Studio API", lifespan=lifespan)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_origin_regex=config.LOCALHOST_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
    return response

# ----------------------
# Error handling
# ----------------------

def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message}, headers=headers)


def describe_errors(errors) -> str:
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
        parts.append(f"{'.'.join(loc)}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(404, f"Route {request.url.path} not found")
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    logger.warning(f"Bad request to {request.url.path}: {describe_errors(exc.errors())}")
    return error_response(400, describe_errors(exc.errors()))


@app.exception_handler(ValidationError)
async def model_validation_error(request: Request, exc: ValidationError):
    return error_response(400, describe_errors(exc.errors()))


@app.exception_handler(UploadError)
async def upload_error(request: Request, exc: UploadError):
    return error_response(400, exc.message)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_error(request: Request, exc: DuplicateKeyError):
    return error_response(400, "Duplicate field value entered")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded(request: Request, exc: RateLimitExceeded):
    client = request.client.host if request.client else "-"
    logger.warning(f"Rate limit exceeded for {client} on {request.url.path}")
    return error_response(429, "Too many requests from this IP, please try again later.")


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return error_response(500, "Internal server error")

# ----------------------
# Routes
# ----------------------

for module in (auth, contact, projects, admin, blog, seo, notifications, slideshow, public):
    app.include_router(module.router)


@app.get("/")
def read_root():
    return {"message": "Interior Design Studio API running"}


@app.get("/api/health")
def health():
    response = {"success": True, "status": "OK", "timestamp": utcnow(), "database": "Not Connected"}
    try:
        db.command("ping")
        response["database"] = "Connected"
    except PyMongoError as e:
        logger.warning(f"Health check could not reach the database: {e}")
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT)
