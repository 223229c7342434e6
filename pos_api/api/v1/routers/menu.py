from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pos_api.core.errors import BadRequest
from pos_api.db.session import get_db
from pos_api.schemas.menu import MenuResponse
from pos_api.services.menu.catalog import load_menu

router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("", response_model=MenuResponse)
def get_menu(request: Request, institution_id: Optional[int] = None, db: Session = Depends(get_db)):
    """visible categories and available items for one tenant."""
    if not institution_id:
        raise BadRequest("Institution ID is required")
    return load_menu(db, institution_id, cache_key=str(request.url.query))
