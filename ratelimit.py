from slowapi import Limiter
from slowapi.util import get_remote_address

import config

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{config.RATE_LIMIT_MAX}/{config.RATE_LIMIT_WINDOW}minutes"],
    headers_enabled=False,
    enabled=config.RATE_LIMIT_ENABLED,
)
