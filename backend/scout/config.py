import os

def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val

API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# "memory" keeps matches in-process; "redis" shares them across workers.
MATCH_STORE = (os.getenv("MATCH_STORE") or "memory").strip().lower()
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")
# Seconds a per-match write lock may be held before redis expires it.
MATCH_LOCK_TIMEOUT = float(os.getenv("MATCH_LOCK_TIMEOUT", "5"))
