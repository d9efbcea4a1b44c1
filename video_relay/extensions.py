from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Per-IP limits; in-memory storage is enough for the single-process relay
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
)
