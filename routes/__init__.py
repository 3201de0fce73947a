# Routes package __init__.py - re-exports routers for main.py convenience
from .auth import router as auth_router
from .bible import router as bible_router
from .records import router as records_router
from .reports import router as reports_router
from .settings import router as settings_router
from .spend import router as spend_router
from .bonus import router as bonus_router
from .users import router as users_router
from .memory_items import router as memory_items_router
from .leaderboard import router as leaderboard_router

__all__ = [
    'auth_router', 'bible_router', 'records_router', 'reports_router', 'settings_router',
    'spend_router', 'bonus_router', 'users_router', 'memory_items_router', 'leaderboard_router',
]
