from django.apps import AppConfig, apps
from django.conf import settings


class HotelBookingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "hotel_booking"
    verbose_name = "Hotel booking"

    def ready(self):
        from .engine import BookingEngine
        from .locks import RoomLocks
        from .queries import BookingQueries
        from .repositories import DjangoBookingRepository

        repository = DjangoBookingRepository()
        self.engine = BookingEngine(
            repository,
            locks=RoomLocks(timeout=getattr(settings, "BOOKING_LOCK_TIMEOUT", 10.0)),
            retry_attempts=getattr(settings, "BOOKING_STORE_RETRY_ATTEMPTS", 3),
            retry_backoff=getattr(settings, "BOOKING_STORE_RETRY_BACKOFF", 0.1),
        )
        self.queries = BookingQueries(repository)


def booking_engine():
    return apps.get_app_config("hotel_booking").engine


def booking_queries():
    return apps.get_app_config("hotel_booking").queries
