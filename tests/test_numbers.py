import re

from pos_api.services.orders.numbers import MAX_ATTEMPTS, gen_order_number, unique_order_number


def test_order_number_format():
    assert re.match(r"^ORD-\d{13}-\d{3}$", gen_order_number())


def test_first_free_number_is_used():
    values = iter(["ORD-1-001", "ORD-1-002", "ORD-1-003"])
    taken = {"ORD-1-001", "ORD-1-002"}
    assert unique_order_number(lambda n: n in taken, lambda: next(values)) == "ORD-1-003"


def test_gives_up_after_max_attempts():
    values = iter([f"ORD-1-{i:03d}" for i in range(10)])
    checked = []

    def exists(number):
        checked.append(number)
        return True

    number = unique_order_number(exists, lambda: next(values))
    assert len(checked) == MAX_ATTEMPTS
    assert number not in checked
