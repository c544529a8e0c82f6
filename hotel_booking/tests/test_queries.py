from django.test import TestCase

from hotel_booking.exceptions import AuthorizationError, NotFoundError, ValidationError
from hotel_booking.models import Booking
from hotel_booking.queries import BookingQueries
from hotel_booking.repositories import DjangoBookingRepository

from .utils import days_from_now, make_booking, make_hotel, make_room, make_user


class BookingQueriesTestCase(TestCase):

    def setUp(self):
        self.queries = BookingQueries(DjangoBookingRepository())
        hotel = make_hotel()
        self.room = make_room(hotel)
        self.other_room = make_room(hotel, number="102")
        self.owner = make_user("owner")
        self.stranger = make_user("stranger")

        self.pending = make_booking(self.room, self.owner, days_from_now(2), days_from_now(4))
        self.confirmed = make_booking(self.other_room, self.owner, days_from_now(5), days_from_now(7),
                                      status=Booking.Status.CONFIRMED, payment_status=Booking.PaymentStatus.PAID)
        self.theirs = make_booking(self.room, self.stranger, days_from_now(8), days_from_now(9))

    def test_bookings_for_user_newest_first(self):
        self.assertEqual(self.queries.bookings_for_user(self.owner.id), [self.confirmed, self.pending])
        self.assertEqual(self.queries.bookings_for_user(self.stranger.id), [self.theirs])

    def test_owner_can_read_own_booking(self):
        booking = self.queries.get_booking_for_user(self.pending.id, self.owner.id)
        self.assertEqual(booking, self.pending)

    def test_other_users_are_refused(self):
        with self.assertRaises(AuthorizationError):
            self.queries.get_booking_for_user(self.pending.id, self.stranger.id)

    def test_anonymous_caller_sees_not_found(self):
        """Existence is not leaked to callers without an identity"""
        with self.assertRaises(NotFoundError):
            self.queries.get_booking_for_user(self.pending.id, None)

    def test_missing_booking(self):
        with self.assertRaises(NotFoundError):
            self.queries.get_booking(123456)
        with self.assertRaises(NotFoundError):
            self.queries.get_booking_for_user(123456, self.owner.id)

    def test_all_bookings_filters(self):
        scenarios = {
            'no filters': ({}, [self.theirs, self.confirmed, self.pending]),
            'status': ({'status': 'CONFIRMED'}, [self.confirmed]),
            'payment status': ({'payment_status': 'UNPAID'}, [self.theirs, self.pending]),
            'user': ({'user_id': self.stranger.id}, [self.theirs]),
            'room': ({'room_id': self.room.id}, [self.theirs, self.pending]),
            'check-in from': ({'from_date': days_from_now(5)}, [self.theirs, self.confirmed]),
            'check-out until': ({'to_date': days_from_now(7)}, [self.confirmed, self.pending]),
            'limit': ({'limit': 1}, [self.theirs]),
            'offset': ({'limit': 2, 'offset': 1}, [self.confirmed, self.pending]),
        }
        for description, (filters, expected) in scenarios.items():
            with self.subTest(scenario=description):
                self.assertEqual(self.queries.all_bookings(**filters), expected)

    def test_unknown_filter_values(self):
        with self.assertRaises(ValidationError):
            self.queries.all_bookings(status="CHECKED_IN")
        with self.assertRaises(ValidationError):
            self.queries.all_bookings(payment_status="OWED")
