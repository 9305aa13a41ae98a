# app/schemas.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Any

class CacheStats(BaseModel):
    size: int
    max_size: int
    hit_rate: float  # average reads per stored entry, not a lookup ratio
    total_accesses: int
    average_access_count: float
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

class CacheStatistics(BaseModel):
    user_cache: CacheStats
    model_cache: CacheStats
    gallery_cache: CacheStats
    timestamp: datetime

class WarmResponse(BaseModel):
    seeded: int

class ClearResponse(BaseModel):
    status: str = "cleared"

class GalleryInvalidation(BaseModel):
    user_id: str
    removed: int

class ModelCost(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_name: str
    cost: int

class ErrorResponse(BaseModel):
    detail: str
    code: str | None = None
    meta: Any | None = None
