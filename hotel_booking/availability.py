"""
Date-range overlap rules for room occupancy.

Stays are half-open ``[check_in, check_out)`` ranges, so a guest checking out
on the day another checks in does not block the room.
"""
from typing import Iterable, List, NamedTuple

from .models import Booking


class DateRange(NamedTuple):
    start: object
    end: object

    @classmethod
    def of(cls, booking) -> "DateRange":
        return cls(booking.check_in_date, booking.check_out_date)


def overlaps(candidate: DateRange, existing: DateRange) -> bool:
    return candidate.start < existing.end and existing.start < candidate.end


def occupying(bookings: Iterable) -> List:
    """Bookings that hold the room; cancelled ones never do."""
    return [b for b in bookings if b.status != Booking.Status.CANCELLED]


def conflicting_bookings(candidate: DateRange, bookings: Iterable) -> List:
    return [b for b in occupying(bookings) if overlaps(candidate, DateRange.of(b))]


def room_is_free(room, bookings: Iterable, candidate: DateRange) -> bool:
    if not room.available:
        return False
    return not conflicting_bookings(candidate, bookings)
