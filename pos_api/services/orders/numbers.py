import logging
import random
import time
from typing import Callable

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5


def gen_order_number() -> str:
    # epoch millis plus a random suffix to make same-millisecond collisions unlikely
    return f"ORD-{int(time.time() * 1000)}-{random.randint(0, 999):03d}"


def unique_order_number(
    exists: Callable[[str], bool],
    generate: Callable[[], str] = gen_order_number,
    max_attempts: int = MAX_ATTEMPTS,
) -> str:
    """generate an order number not yet taken according to ``exists``.

    Best-effort: after ``max_attempts`` collisions the last generated value is
    returned without a further check.
    """
    number = generate()
    for _ in range(max_attempts):
        if not exists(number):
            return number
        number = generate()
    logger.warning(f"Order number uniqueness not confirmed after {max_attempts} attempts, using {number}")
    return number
