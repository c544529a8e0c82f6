import math
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

ONE_DAY = timedelta(days=1)
CENTS = Decimal("0.01")


def nights(check_in, check_out):
    """Number of billable nights. Any partial day bills a full extra night."""
    span = check_out - check_in
    if span <= timedelta(0):
        raise ValueError("check_out must be after check_in")
    return math.ceil(span / ONE_DAY)


def calculate_price(nightly_price, check_in, check_out):
    total = Decimal(str(nightly_price)) * nights(check_in, check_out)
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)
