from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q


class Hotel(models.Model):
    name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100)
    country = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=20, blank=True)
    star_rating = models.PositiveSmallIntegerField(
        default=3, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    amenities = models.JSONField(default=list, blank=True)
    image_url = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.city})"


class Room(models.Model):
    class RoomType(models.TextChoices):
        STANDARD = "STANDARD"
        DELUXE = "DELUXE"
        SUITE = "SUITE"
        EXECUTIVE = "EXECUTIVE"
        PRESIDENTIAL = "PRESIDENTIAL"

    hotel = models.ForeignKey(Hotel, on_delete=models.CASCADE, related_name="rooms")
    room_number = models.CharField(max_length=20)
    room_type = models.CharField(max_length=20, choices=RoomType.choices, default=RoomType.STANDARD)
    # nightly rate
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    capacity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    # hotel-side takedown, independent of calendar occupancy
    available = models.BooleanField(default=True)
    amenities = models.JSONField(default=list, blank=True)
    image_url = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["hotel_id", "room_number"]
        constraints = [
            models.UniqueConstraint(fields=["hotel", "room_number"], name="unique_room_number_per_hotel"),
        ]

    def __str__(self):
        return f"Room {self.room_number} - {self.hotel.name}"


class Booking(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING"
        CONFIRMED = "CONFIRMED"
        CANCELLED = "CANCELLED"
        COMPLETED = "COMPLETED"

    class PaymentStatus(models.TextChoices):
        UNPAID = "UNPAID"
        PAID = "PAID"
        REFUNDED = "REFUNDED"

    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name="bookings")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="bookings")
    check_in_date = models.DateTimeField()
    check_out_date = models.DateTimeField()  # exclusive
    number_of_guests = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    total_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)
    special_requests = models.TextField(blank=True)
    # bumped on every status/payment write, used for compare-and-swap
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["room", "status"], name="booking_room_status_idx"),
            models.Index(fields=["user", "created_at"], name="booking_user_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(check_out_date__gt=F("check_in_date")),
                name="booking_check_out_after_check_in",
            ),
        ]

    def __str__(self):
        return f"Booking {self.pk} - room {self.room_id} ({self.check_in_date:%Y-%m-%d} to {self.check_out_date:%Y-%m-%d})"
