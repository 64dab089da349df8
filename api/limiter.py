"""
api/limiter.py -- Shared slowapi rate limiter for authentication attempts.

Import this in api/main.py (to attach it to app.state and register the 429
handler) and in api/routes/auth.py (to decorate signup and signin).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and limits would never trigger.

Policy:
  Fixed window, keyed by client address. signup and signin share ONE counter
  (scope "auth"), so five signups plus one signin from the same address in a
  window is the sixth attempt and gets 429. Windows reset at fixed
  boundaries; a burst straddling two windows is an accepted tradeoff for an
  O(1) check.

  The decorator checks the limit before the route body runs -- a throttled
  request never reaches bcrypt. @auth_attempts must sit BELOW @router.post so
  FastAPI registers the checking wrapper, and the route must accept a
  `request: Request` parameter.

  Bodies FastAPI rejects during model parsing (missing fields, non-JSON) get
  their 400 before the decorator runs and are not counted. Field-policy 400s
  raised inside the handler are counted. Neither reaches bcrypt.

  The limit string is read from Settings on every check (dynamic limit), so
  AUTH_RATE_LIMIT changes apply without re-importing this module.
"""

from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

AUTH_SCOPE = "auth"

limiter = Limiter(key_func=get_remote_address, strategy="fixed-window", storage_uri="memory://")


def auth_rate_limit() -> str:
    return get_settings().auth_rate_limit


def auth_window_seconds() -> int:
    """Length of the auth window -- the worst-case Retry-After."""
    return parse(auth_rate_limit()).get_expiry()


# Apply to every route that performs credential work.
auth_attempts = limiter.shared_limit(auth_rate_limit, scope=AUTH_SCOPE)
