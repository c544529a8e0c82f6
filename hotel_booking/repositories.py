"""
Storage boundary for the booking engine.

``BookingRepository`` is the interface the engine and the query layer are
written against. ``DjangoBookingRepository`` implements it on the ORM and is
the only place bookings are written. Finders return ``None`` for
missing rows, writers raise ``NotFoundError``, and lost connections surface as
``TransientStoreError``.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager

from django.db import InterfaceError, OperationalError, transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import ConflictError, NotFoundError, TransientStoreError
from .models import Booking, Room

logger = logging.getLogger(__name__)


class BookingRepository(ABC):

    @abstractmethod
    def atomic(self):
        """Context manager wrapping a unit of work; rolled back on any exception."""

    @abstractmethod
    def find_room_by_id(self, room_id, for_update=False):
        """Return the room or ``None``. ``for_update`` locks the row until the unit of work ends."""

    @abstractmethod
    def find_bookings_for_room(self, room_id, exclude_status=Booking.Status.CANCELLED):
        pass

    @abstractmethod
    def find_booking_by_id(self, booking_id):
        pass

    @abstractmethod
    def find_bookings(self, user_id=None, room_id=None, status=None, payment_status=None,
                      from_date=None, to_date=None, check_out_before=None, limit=None, offset=None):
        """Bookings matching every given filter, newest first."""

    @abstractmethod
    def insert_booking(self, **data):
        pass

    @abstractmethod
    def update_booking_status(self, booking_id, status=None, payment_status=None, expected_version=None):
        """Write status and/or payment status in one statement.

        With ``expected_version`` the write only applies if the stored version
        still matches; otherwise ``ConflictError`` is raised and nothing changes.
        """

    @abstractmethod
    def delete_booking(self, booking_id):
        pass


@contextmanager
def store_errors(operation):
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.warning("Store failure during %s: %s", operation, exc)
        raise TransientStoreError(f"Store unavailable during {operation}") from exc


class DjangoBookingRepository(BookingRepository):

    def _bookings(self):
        return Booking.objects.select_related("room__hotel", "user")

    @contextmanager
    def atomic(self):
        with store_errors("transaction"):
            with transaction.atomic():
                yield

    @store_errors("find_room_by_id")
    def find_room_by_id(self, room_id, for_update=False):
        rooms = Room.objects.select_related("hotel")
        if for_update:
            rooms = Room.objects.select_for_update()
        try:
            return rooms.filter(pk=room_id).first()
        except (TypeError, ValueError):
            return None

    @store_errors("find_bookings_for_room")
    def find_bookings_for_room(self, room_id, exclude_status=Booking.Status.CANCELLED):
        bookings = Booking.objects.filter(room_id=room_id)
        if exclude_status:
            bookings = bookings.exclude(status=exclude_status)
        return list(bookings.order_by("check_in_date"))

    @store_errors("find_booking_by_id")
    def find_booking_by_id(self, booking_id):
        try:
            return self._bookings().filter(pk=booking_id).first()
        except (TypeError, ValueError):
            return None

    @store_errors("find_bookings")
    def find_bookings(self, user_id=None, room_id=None, status=None, payment_status=None,
                      from_date=None, to_date=None, check_out_before=None, limit=None, offset=None):
        bookings = self._bookings()
        if user_id is not None:
            bookings = bookings.filter(user_id=user_id)
        if room_id is not None:
            bookings = bookings.filter(room_id=room_id)
        if status:
            bookings = bookings.filter(status=status)
        if payment_status:
            bookings = bookings.filter(payment_status=payment_status)
        if from_date:
            bookings = bookings.filter(check_in_date__gte=from_date)
        if to_date:
            bookings = bookings.filter(check_out_date__lte=to_date)
        if check_out_before:
            bookings = bookings.filter(check_out_date__lte=check_out_before)
        bookings = bookings.order_by("-created_at", "-id")

        start = offset or 0
        if limit is not None:
            return list(bookings[start:start + limit])
        return list(bookings[start:])

    @store_errors("insert_booking")
    def insert_booking(self, **data):
        booking = Booking.objects.create(**data)
        return self._bookings().get(pk=booking.pk)

    @store_errors("update_booking_status")
    def update_booking_status(self, booking_id, status=None, payment_status=None, expected_version=None):
        changes = {"version": F("version") + 1, "updated_at": timezone.now()}
        if status:
            changes["status"] = status
        if payment_status:
            changes["payment_status"] = payment_status

        bookings = Booking.objects.filter(pk=booking_id)
        if expected_version is not None:
            bookings = bookings.filter(version=expected_version)
        if not bookings.update(**changes):
            if not Booking.objects.filter(pk=booking_id).exists():
                raise NotFoundError(f"Booking {booking_id} not found")
            raise ConflictError("Booking was modified concurrently, please reload and try again")
        return self._bookings().get(pk=booking_id)

    @store_errors("delete_booking")
    def delete_booking(self, booking_id):
        booking = self.find_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        booking_pk = booking.pk
        booking.delete()
        booking.id = booking_pk
        return booking
