from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pos_api.services.orders.mapping import KitchenOrder

BOARD_FILTERS = ("all", "pending", "preparing", "ready", "completed")


def board_counts(orders: List[KitchenOrder]) -> Dict[str, int]:
    return {
        "all": len(orders),
        # confirmed orders wait in the same column as pending ones
        "pending": sum(1 for o in orders if o.status in ("pending", "confirmed")),
        "preparing": sum(1 for o in orders if o.status == "preparing"),
        "ready": sum(1 for o in orders if o.status == "ready"),
        "completed": sum(1 for o in orders if o.status == "completed"),
    }


def build_board(
    orders: List[KitchenOrder],
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[List[KitchenOrder], Dict[str, int]]:
    """filter, search and sort orders for the kitchen screen (newest first)."""
    filtered = orders
    if status and status != "all":
        wanted = {"pending", "confirmed"} if status == "pending" else {status}
        filtered = [o for o in filtered if o.status in wanted]
    if search and search.strip():
        filtered = [o for o in filtered if o.matches(search)]
    filtered = sorted(filtered, key=lambda o: (o.created_at or datetime.min, o.id), reverse=True)
    return filtered, board_counts(orders)
