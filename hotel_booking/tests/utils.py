from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from hotel_booking.models import Booking, Hotel, Room


def days_from_now(days, hour=0):
    """Midnight-aligned instant ``days`` from today, so stays are whole nights."""
    today = timezone.now().replace(hour=0, minute=0, second=0, microsecond=0)
    return today + timedelta(days=days, hours=hour)


def make_user(username, **extra):
    return get_user_model().objects.create_user(
        username=username, email=f"{username}@example.com", password="secret-pass-123", **extra
    )


def make_hotel(name="Test Hotel", **extra):
    return Hotel.objects.create(name=name, city="Lisbon", country="Portugal", **extra)


def make_room(hotel, number="101", price="100.00", capacity=2, **extra):
    return Room.objects.create(hotel=hotel, room_number=number, price=Decimal(price), capacity=capacity, **extra)


def make_booking(room, user, check_in, check_out, status=Booking.Status.PENDING,
                 payment_status=Booking.PaymentStatus.UNPAID, guests=1, total_price="100.00"):
    """Insert a booking row directly, bypassing the engine, for test fixtures."""
    return Booking.objects.create(
        room=room,
        user=user,
        check_in_date=check_in,
        check_out_date=check_out,
        number_of_guests=guests,
        total_price=Decimal(total_price),
        status=status,
        payment_status=payment_status,
    )
