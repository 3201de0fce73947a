from fastapi import APIRouter, Depends

from db.database import get_db
from models.settings import SettingsUpdate
from utils.auth import require_admin
from utils.settings import get_or_create_settings, update_settings

router = APIRouter()


@router.get("")
async def get_settings(conn=Depends(get_db)):
    """Program-wide point defaults and Bible version."""
    return get_or_create_settings(conn)


@router.patch("", dependencies=[Depends(require_admin)])
async def patch_settings(body: SettingsUpdate, conn=Depends(get_db)):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    return update_settings(conn, changes)
