import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .database import Base, engine
from .errors import code_for
from .routers import (
    favourite_routes,
    like_routes,
    movie_routes,
    public_routes,
    review_routes,
    user_routes,
    watchlist_routes,
)

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure tables exist
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Cinelog API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    client = request.client.host if request.client else "-"
    message = (
        f"{request.method} {request.url.path} {response.status_code} "
        f"{duration_ms:.0f}ms - {client}"
    )
    if response.status_code >= 500:
        logger.error(message)
    elif response.status_code >= 400:
        logger.warning(message)
    else:
        logger.info(message)
    return response


def error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), code_for(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return error_response(400, "; ".join(problems) or "Invalid request", "validation_error")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, "Internal Server Error", "internal_error")


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(user_routes.router)
app.include_router(movie_routes.router)
app.include_router(review_routes.router)
app.include_router(watchlist_routes.router)
app.include_router(favourite_routes.router)
app.include_router(like_routes.router)
app.include_router(public_routes.router)
