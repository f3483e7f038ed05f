# Core modules for Reelpipe backend
# security is imported directly (reelpipe.core.security); it depends on models
from .config import Settings, get_settings, settings
from .database import Base, get_async_session, async_engine, AsyncSessionLocal
from .rate_limit import (
    RateLimitMiddleware,
    rate_limit_middleware,
    get_rate_limit_category,
    RATE_LIMITS,
    ROUTE_CATEGORIES,
)
from .redis import (
    get_redis_connection,
    check_redis_health,
    RedisHealthStatus,
)
from .storage import (
    StoredArtifact,
    build_render_key,
    get_storage_root,
    public_url_for,
    save_artifact,
    validate_project_id,
)
from .url_safety import is_safe_url

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "settings",
    # Database
    "Base",
    "get_async_session",
    "async_engine",
    "AsyncSessionLocal",
    # Rate Limiting
    "RateLimitMiddleware",
    "rate_limit_middleware",
    "get_rate_limit_category",
    "RATE_LIMITS",
    "ROUTE_CATEGORIES",
    # Redis
    "get_redis_connection",
    "check_redis_health",
    "RedisHealthStatus",
    # Storage
    "StoredArtifact",
    "build_render_key",
    "get_storage_root",
    "public_url_for",
    "save_artifact",
    "validate_project_id",
    # URL safety
    "is_safe_url",
]
