import time
import logging
from collections import defaultdict
from typing import Any, Dict

logger = logging.getLogger(__name__)

# Rate limiting
class RateLimiter:
    def __init__(self):
        self.requests = defaultdict(list)

    def is_allowed(self, key: str, max_requests: int = 100, window_seconds: int = 3600) -> bool:
        """Check if request is allowed based on rate limit"""
        now = time.time()
        # Clean old requests
        self.requests[key] = [req_time for req_time in self.requests[key]
                             if now - req_time < window_seconds]

        if len(self.requests[key]) < max_requests:
            self.requests[key].append(now)
            return True
        return False

    def reset(self):
        self.requests.clear()

rate_limiter = RateLimiter()

# Pagination helper
def paginate_query(query, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
    """Add pagination to SQLAlchemy query"""
    page = max(page, 1)
    total = query.count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": items,
        "total": total,
        "page": page,
        "per_page": per_page,
        "pages": (total + per_page - 1) // per_page
    }
