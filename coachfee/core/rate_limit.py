from slowapi import Limiter
from slowapi.util import get_remote_address

# Shared limiter; main.py attaches it to app.state
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000/hour"],
    headers_enabled=False,
)
