from .contracts import Policy, ConsumeResult
from .service import RateLimiterService
from .middleware import RateLimiterMiddleware
from .store import InMemoryStore, StateStore

__all__ = [
    "Policy",
    "ConsumeResult",
    "RateLimiterService",
    "RateLimiterMiddleware",
    "InMemoryStore",
    "StateStore",
]
