"""Application entrypoint.

Centralized settings + structured logging + cache lifecycle.
"""
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from app.routes import cache_routes
import logging
import json
from app.core.settings import settings
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from app.services.cache_registry import CacheRegistry
from fastapi import Request
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import uvicorn

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "level": record.levelname,
            "ts": record.created,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            log_record["exc"] = self.formatException(record.exc_info)
        return json.dumps(log_record)

for handler in logging.getLogger().handlers:
    handler.setFormatter(JsonFormatter())

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="v1", openapi_tags=[
    {"name": "cache", "description": "Cache statistics, warm-up and invalidation"},
])

# Attach rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", ["method", "path", "status"])
REQUEST_LATENCY = Histogram("http_request_duration_seconds", "Request latency", ["path"])
CACHE_ENTRIES = Gauge("cache_entries", "Entries currently held per cache", ["cache"])

@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    path = request.url.path
    method = request.method
    with REQUEST_LATENCY.labels(path=path).time():
        response = await call_next(request)
    REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
    return response

@app.on_event("startup")
def start_caches():
    """Builds the shared cache registry and starts its sweepers."""
    app.state.caches = CacheRegistry.from_settings(settings)
    if settings.warm_model_cache_on_startup:
        app.state.caches.warm_model_cache()
    logger.info("Cache registry started")

@app.on_event("shutdown")
def stop_caches():
    caches = getattr(app.state, "caches", None)
    if caches is not None:
        caches.destroy()
        logger.info("Cache registry stopped")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_allow_origins.split(',')],
    allow_credentials=True,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include routers
app.include_router(cache_routes.router, prefix="/api/cache", tags=["cache"])

@app.get("/")
async def root():
    """Root endpoint for the API."""
    return {"message": f"{settings.app_name} is running", "version": app.version}

@app.get("/metrics")
def metrics(request: Request):
    caches = getattr(request.app.state, "caches", None)
    if caches is not None:
        CACHE_ENTRIES.labels(cache="user").set(caches.user_cache.size())
        CACHE_ENTRIES.labels(cache="model").set(caches.model_cache.size())
        CACHE_ENTRIES.labels(cache="gallery").set(caches.gallery_cache.size())
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def run():
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
