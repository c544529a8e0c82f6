"""
Booking lifecycle engine.

All booking writes go through ``BookingEngine``: creation against the room's
availability, status and payment transitions, and the admin hard delete.
Every rule is checked before anything is written, and every rejection is
raised as a typed error from ``hotel_booking.exceptions``.
"""
import logging
import time
from datetime import datetime
from typing import NamedTuple

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from . import pricing
from .availability import DateRange, room_is_free
from .exceptions import ConflictError, NotFoundError, TransientStoreError, ValidationError
from .locks import RoomLocks
from .models import Booking

logger = logging.getLogger(__name__)

Status = Booking.Status
PaymentStatus = Booking.PaymentStatus


class InitialState(NamedTuple):
    status: str
    payment_status: str


# Self-service reservation, paid later.
RESERVATION = InitialState(Status.PENDING, PaymentStatus.UNPAID)
# Checkout flow that takes payment up front.
IMMEDIATE_PAYMENT = InitialState(Status.CONFIRMED, PaymentStatus.PAID)

INITIAL_STATES = (RESERVATION, IMMEDIATE_PAYMENT)

TRANSITIONS = {
    Status.PENDING: frozenset({Status.CONFIRMED, Status.CANCELLED}),
    Status.CONFIRMED: frozenset({Status.CANCELLED, Status.COMPLETED}),
    Status.CANCELLED: frozenset(),
    Status.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def is_cancellable(booking, now=None):
    now = now or timezone.now()
    return Status(booking.status) not in TERMINAL_STATUSES and booking.check_in_date > now


def _instant(value, field):
    if isinstance(value, str):
        try:
            value = parse_datetime(value)
        except ValueError:
            # well-formed but impossible, e.g. February 30th
            raise ValidationError(f"{field} must be a valid date and time") from None
    if not isinstance(value, datetime):
        raise ValidationError(f"{field} must be a valid date and time")
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def _choice(choices, value, field):
    try:
        return choices(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value!r}") from None


class BookingEngine:

    def __init__(self, repository, locks=None, clock=timezone.now,
                 retry_attempts=3, retry_backoff=0.1, sleep=time.sleep):
        self.repository = repository
        self.locks = locks or RoomLocks()
        self.clock = clock
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff = retry_backoff
        self.sleep = sleep

    def _with_retry(self, operation, func):
        attempt = 1
        while True:
            try:
                return func()
            except TransientStoreError:
                if attempt >= self.retry_attempts:
                    logger.error("%s failed after %d attempts", operation, attempt)
                    raise
                delay = self.retry_backoff * (2 ** (attempt - 1))
                logger.warning("%s hit a store failure (attempt %d/%d), retrying in %.2fs",
                               operation, attempt, self.retry_attempts, delay)
                self.sleep(delay)
                attempt += 1

    def _get_booking(self, booking_id):
        booking = self._with_retry("find_booking", lambda: self.repository.find_booking_by_id(booking_id))
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def _stay(self, check_in, check_out):
        check_in = _instant(check_in, "check_in")
        check_out = _instant(check_out, "check_out")
        if check_out <= check_in:
            raise ValidationError("Check-out date must be after check-in date")
        return DateRange(check_in, check_out)

    def _find_room(self, room_id, for_update=False):
        room = self.repository.find_room_by_id(room_id, for_update=for_update)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    def _ensure_available(self, room, stay, bookings):
        if room_is_free(room, bookings, stay):
            return
        if not room.available:
            raise ConflictError("Room is not available for booking")
        raise ConflictError("Room is already booked for these dates")

    def calculate_price(self, nightly_price, check_in, check_out):
        stay = self._stay(check_in, check_out)
        return pricing.calculate_price(nightly_price, stay.start, stay.end)

    def is_room_available(self, room_id, check_in, check_out):
        stay = self._stay(check_in, check_out)

        def check():
            room = self._find_room(room_id)
            return room_is_free(room, self.repository.find_bookings_for_room(room.id), stay)

        return self._with_retry("is_room_available", check)

    def create_booking(self, user_id, room_id, check_in, check_out, number_of_guests,
                       initial_state, special_requests=""):
        if user_id in (None, ""):
            raise ValidationError("User ID is required")
        if room_id in (None, ""):
            raise ValidationError("Room ID is required")
        check_in = _instant(check_in, "check_in")
        check_out = _instant(check_out, "check_out")
        if isinstance(number_of_guests, bool) or not isinstance(number_of_guests, int) or number_of_guests < 1:
            raise ValidationError("Number of guests must be at least 1")
        if initial_state is None:
            raise ValidationError("An initial booking state is required")
        state = InitialState(
            _choice(Status, initial_state[0], "status"),
            _choice(PaymentStatus, initial_state[1], "payment status"),
        )
        if state not in INITIAL_STATES:
            raise ValidationError(
                f"Bookings cannot start as {state.status}/{state.payment_status}; "
                f"use {RESERVATION.status}/{RESERVATION.payment_status} "
                f"or {IMMEDIATE_PAYMENT.status}/{IMMEDIATE_PAYMENT.payment_status}"
            )
        if special_requests is not None and not isinstance(special_requests, str):
            raise ValidationError("Special requests must be text")

        if check_in < self.clock():
            raise ValidationError("Check-in date cannot be in the past")
        stay = self._stay(check_in, check_out)
        # Unknown rooms never get a lock; the row is read again under it.
        self._with_retry("find_room", lambda: self._find_room(room_id))

        def insert():
            with self.locks.hold(room_id):
                with self.repository.atomic():
                    room = self._find_room(room_id, for_update=True)
                    if number_of_guests > room.capacity:
                        raise ValidationError(
                            f"Room {room.room_number} holds at most {room.capacity} guests"
                        )
                    self._ensure_available(room, stay, self.repository.find_bookings_for_room(room.id))
                    return self.repository.insert_booking(
                        user_id=user_id,
                        room_id=room.id,
                        check_in_date=stay.start,
                        check_out_date=stay.end,
                        number_of_guests=number_of_guests,
                        total_price=pricing.calculate_price(room.price, stay.start, stay.end),
                        status=state.status,
                        payment_status=state.payment_status,
                        special_requests=special_requests or "",
                    )

        booking = self._with_retry("create_booking", insert)
        logger.info("Booking %s created for room %s by user %s (%s/%s, %s)",
                    booking.id, room_id, user_id, booking.status, booking.payment_status, booking.total_price)
        return booking

    def transition_status(self, booking_id, target_status):
        target = _choice(Status, target_status, "booking status")
        booking = self._get_booking(booking_id)
        current = Status(booking.status)

        payment_status = None
        if target == Status.CANCELLED:
            if booking.check_in_date <= self.clock():
                raise ConflictError("Bookings can only be cancelled before check-in")
            payment_status = PaymentStatus.REFUNDED
        if target not in TRANSITIONS[current]:
            raise ConflictError(f"Cannot change booking status from {current} to {target}")

        updated = self._with_retry("transition_status", lambda: self.repository.update_booking_status(
            booking.id, status=target, payment_status=payment_status, expected_version=booking.version,
        ))
        logger.info("Booking %s moved from %s to %s", booking.id, current, target)
        return updated

    def cancel_booking(self, booking_id):
        return self.transition_status(booking_id, Status.CANCELLED)

    def confirm_booking(self, booking_id):
        return self.transition_status(booking_id, Status.CONFIRMED)

    def complete_booking(self, booking_id):
        return self.transition_status(booking_id, Status.COMPLETED)

    def record_payment(self, booking_id):
        booking = self._get_booking(booking_id)
        if booking.status not in (Status.PENDING, Status.CONFIRMED):
            raise ConflictError(f"Cannot record a payment on a {booking.status} booking")
        if booking.payment_status != PaymentStatus.UNPAID:
            raise ConflictError(f"Booking is already {booking.payment_status}")

        updated = self._with_retry("record_payment", lambda: self.repository.update_booking_status(
            booking.id, payment_status=PaymentStatus.PAID, expected_version=booking.version,
        ))
        logger.info("Payment recorded for booking %s", booking.id)
        return updated

    def delete_booking(self, booking_id):
        deleted = self._with_retry("delete_booking", lambda: self.repository.delete_booking(booking_id))
        logger.info("Booking %s deleted", booking_id)
        return deleted

    def complete_due_bookings(self, now=None):
        """Complete every confirmed booking whose check-out has passed."""
        now = now or self.clock()
        due = self._with_retry("complete_due_bookings", lambda: self.repository.find_bookings(
            status=Status.CONFIRMED, check_out_before=now,
        ))
        completed = []
        for booking in due:
            try:
                completed.append(self.transition_status(booking.id, Status.COMPLETED))
            except (ConflictError, NotFoundError) as exc:
                logger.warning("Skipped completing booking %s: %s", booking.id, exc.detail)
        return completed
