"""App-wide extension singletons, bound to the app in ``main.py``."""
import os

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

# memory:// only counts per process; point RATELIMIT_STORAGE_URL at redis when running several workers
_limiter_storage = os.getenv("RATELIMIT_STORAGE_URL", "memory://")

# Applied to every endpoint that writes tactics, drills or templates
WRITE_RATE_LIMIT = os.getenv("CLUBPORTAL_WRITE_RATE_LIMIT", "60 per minute")

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=_limiter_storage,
)

migrate = Migrate()

__all__ = ["limiter", "migrate", "WRITE_RATE_LIMIT"]
