from .exceptions import AuthorizationError, NotFoundError, ValidationError
from .models import Booking


class BookingQueries:
    """Read-only booking views. Nothing here writes."""

    def __init__(self, repository):
        self.repository = repository

    def bookings_for_user(self, user_id):
        return self.repository.find_bookings(user_id=user_id)

    def all_bookings(self, status=None, payment_status=None, from_date=None, to_date=None,
                     user_id=None, room_id=None, limit=None, offset=None):
        if status and status not in Booking.Status.values:
            raise ValidationError(f"Invalid booking status: {status!r}")
        if payment_status and payment_status not in Booking.PaymentStatus.values:
            raise ValidationError(f"Invalid payment status: {payment_status!r}")
        return self.repository.find_bookings(
            user_id=user_id,
            room_id=room_id,
            status=status,
            payment_status=payment_status,
            from_date=from_date,
            to_date=to_date,
            limit=limit,
            offset=offset,
        )

    def get_booking(self, booking_id):
        booking = self.repository.find_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def get_booking_for_user(self, booking_id, user_id):
        # Anonymous callers cannot tell "missing" from "not yours".
        if user_id is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        booking = self.get_booking(booking_id)
        if str(booking.user_id) != str(user_id):
            raise AuthorizationError("You can only access your own bookings")
        return booking
