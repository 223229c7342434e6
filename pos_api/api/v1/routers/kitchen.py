from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pos_api.db.session import get_db
from pos_api.schemas.orders import KitchenBoardResponse
from pos_api.services.orders.kitchen import build_board
from pos_api.services.orders.mapping import kitchen_orders_from_rows
from pos_api.services.orders.store import OrderStore

router = APIRouter(prefix="/kitchen", tags=["kitchen"])


@router.get("/orders", response_model=KitchenBoardResponse)
def kitchen_orders(
    institution_id: Optional[int] = None,
    status: Optional[str] = Query(None, pattern="^(all|pending|confirmed|preparing|ready|completed|cancelled)$"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    rows = OrderStore(db).list_orders(institution_id=institution_id)
    orders, counts = build_board(kitchen_orders_from_rows(rows), status=status, search=search)
    return {"orders": [o.to_dict() for o in orders], "counts": counts}
