import logging, time
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import redis
from smartmeter.config import settings
from smartmeter.database import Base, SessionLocal, engine
from smartmeter.logging_config import setup_logging
from smartmeter.models import alert, device, reading, user  # noqa: F401  register tables
from smartmeter.routes import alerts, readings
from smartmeter.services.cache import redis_client

logger = logging.getLogger("smartmeter.http")

# Secure headers middleware
class SecureHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'no-referrer'
        response.headers['Strict-Transport-Security'] = 'max-age=63072000; includeSubDomains; preload'
        return response

# Request logging middleware
class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = (time.time() - start_time) * 1000  # ms
        logger.info(f"{request.method} {request.url.path} - {response.status_code} - {duration:.2f}ms")
        return response

setup_logging(settings.log_level)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Smart Energy Meter API",
    description="Energy reading ingestion and power spike alerts",
    version="1.0.0"
)

# Malformed payloads are client errors (400), not 422
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        # Echoed inputs are dropped: NaN/Infinity cannot be rendered as JSON
        content={"success": False, "errors": jsonable_encoder(
            [{"loc": e["loc"], "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
        )},
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
    )

# Enable compression
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# Add secure headers
app.add_middleware(SecureHeadersMiddleware)

# Add request logging middleware
app.add_middleware(LoggingMiddleware)

# API versioning: v1
app.include_router(readings.router, prefix="/api/v1", tags=["energy"])
app.include_router(alerts.router, prefix="/api/v1", tags=["alerts"])

@app.get("/")
def read_root():
    return {"message": "Welcome to Smart Energy Meter API", "docs": "/docs"}

@app.get("/health")
def health_check():
    db_status, redis_status = 'ok', 'ok'
    db = SessionLocal()
    try:
        db.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        db_status = f"error: {str(e)}"
    finally:
        db.close()
    if not settings.cache_enabled:
        redis_status = "disabled"
    else:
        try:
            if not redis_client.ping():
                redis_status = "error: cannot ping Redis"
        except redis.RedisError as e:
            redis_status = f"error: {str(e)}"
    return {"db": db_status, "redis": redis_status}
