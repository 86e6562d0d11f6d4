# backend/main.py
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

load_dotenv()

from config import settings
from database import init_db
from services.errors import (
    InventoryError, NotFound, ValidationFailure, InsufficientStock,
    AlreadyResolved, CategoryInUse, Conflict, GenerationExhausted,
)

# Router imports
from routes.auth import router as auth_router
from routes.categories import router as categories_router
from routes.products import router as products_router
from routes.movements import router as movements_router
from routes.alerts import router as alerts_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("inventory")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create missing tables; schema changes go through alembic
    init_db()
    yield


app = FastAPI(title="Inventory API", version="1.0.0", lifespan=lifespan)

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# HTTP status for each engine error
ERROR_STATUS = {
    NotFound: 404,
    ValidationFailure: 400,
    InsufficientStock: 400,
    AlreadyResolved: 400,
    CategoryInUse: 400,
    Conflict: 409,
    GenerationExhausted: 503,
}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    level = logging.WARNING if response.status_code >= 400 else logging.INFO
    logger.log(level, "%s %s %d %.2fms", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Router registration
app.include_router(auth_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(movements_router)
app.include_router(alerts_router)


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
