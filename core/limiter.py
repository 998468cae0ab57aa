"""
core/limiter.py -- Shared slowapi rate limiter instance.

Lives in core/ so api/ and web/ can share it without importing each other.
Imported by api/main.py (to mount as middleware), by api/routes/v1/auth.py
and by web/routes.py (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures the JSON and HTML login forms draw
from the same in-memory counters. Separate instances would each keep their
own counters and an attacker could alternate between them.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
