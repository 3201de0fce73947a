from .user import AuthUser, LoginRequest, UserCreate, UserUpdate
from .memory_item import MemoryItemCreate, MemoryItemUpdate
from .records import VerseRecordCreate, SpendCreate, SpendUpdate, BonusCreate
from .settings import SettingsUpdate

__all__ = [
    'AuthUser', 'LoginRequest', 'UserCreate', 'UserUpdate',
    'MemoryItemCreate', 'MemoryItemUpdate',
    'VerseRecordCreate', 'SpendCreate', 'SpendUpdate', 'BonusCreate',
    'SettingsUpdate',
]
