import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import combinations

from django.db import connection
from django.test import TransactionTestCase

from hotel_booking.availability import DateRange, overlaps
from hotel_booking.engine import RESERVATION, BookingEngine
from hotel_booking.exceptions import ConflictError
from hotel_booking.models import Booking
from hotel_booking.repositories import DjangoBookingRepository

from .utils import days_from_now, make_booking, make_hotel, make_room, make_user


class RaceConditionTestCase(TransactionTestCase):
    """Concurrent writes against the same room or booking"""

    def setUp(self):
        self.engine = BookingEngine(DjangoBookingRepository())
        self.hotel = make_hotel()
        self.room = make_room(self.hotel, price="100.00", capacity=2)
        self.users = [make_user(f"guest{i}") for i in range(8)]

    def run_concurrently(self, calls):
        """Run each ``(func, args)`` on its own thread, released together by a barrier."""
        barrier = threading.Barrier(len(calls))

        def worker(func, args):
            try:
                barrier.wait()
                return {'success': True, 'result': func(*args)}
            except ConflictError as exc:
                return {'success': False, 'error': exc}
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=len(calls)) as executor:
            futures = [executor.submit(worker, func, args) for func, args in calls]
            return [future.result() for future in as_completed(futures)]

    def book(self, user, room, check_in, check_out):
        return self.engine.create_booking(user.id, room.id, check_in, check_out, 1, RESERVATION)

    def test_concurrent_booking_attempts_for_same_dates(self):
        """Exactly one of several simultaneous identical requests wins"""
        calls = [(self.book, (user, self.room, days_from_now(1), days_from_now(3))) for user in self.users]

        results = self.run_concurrently(calls)

        successful = [r for r in results if r['success']]
        failed = [r for r in results if not r['success']]
        self.assertEqual(len(successful), 1, f"Expected exactly 1 successful booking, got {len(successful)}")
        self.assertEqual(len(failed), len(self.users) - 1)
        self.assertEqual(Booking.objects.filter(room=self.room).count(), 1)

    def test_concurrent_overlapping_ranges_never_double_book(self):
        ranges = [(1, 4), (2, 5), (3, 6), (0, 2), (5, 7), (1, 8)]
        calls = [
            (self.book, (user, self.room, days_from_now(start + 1), days_from_now(end + 1)))
            for user, (start, end) in zip(self.users, ranges)
        ]

        results = self.run_concurrently(calls)

        self.assertTrue(any(r['success'] for r in results))
        stored = [DateRange.of(b) for b in Booking.objects.filter(room=self.room)]
        self.assertEqual(len(stored), sum(r['success'] for r in results))
        for first, second in combinations(stored, 2):
            self.assertFalse(overlaps(first, second), f"{first} overlaps {second}")

    def test_different_rooms_book_in_parallel(self):
        rooms = [make_room(self.hotel, number=str(200 + i)) for i in range(4)]
        calls = [(self.book, (user, room, days_from_now(1), days_from_now(3))) for user, room in zip(self.users, rooms)]

        results = self.run_concurrently(calls)

        self.assertTrue(all(r['success'] for r in results))
        self.assertEqual(Booking.objects.count(), 4)

    def test_cancel_and_complete_race(self):
        """Only one of two racing transitions on the same version is applied"""
        booking = make_booking(self.room, self.users[0], days_from_now(2), days_from_now(4),
                               status=Booking.Status.CONFIRMED, payment_status=Booking.PaymentStatus.PAID)

        results = self.run_concurrently([
            (self.engine.cancel_booking, (booking.id,)),
            (self.engine.complete_booking, (booking.id,)),
        ])

        successful = [r for r in results if r['success']]
        self.assertEqual(len(successful), 1)
        booking.refresh_from_db()
        self.assertEqual(booking.status, successful[0]['result'].status)
        self.assertEqual(booking.version, 1)
