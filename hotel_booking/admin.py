from django.contrib import admin, messages

from .apps import booking_engine
from .exceptions import BookingError
from .models import Booking, Hotel, Room


class RoomInline(admin.TabularInline):
    model = Room
    extra = 0
    fields = ("room_number", "room_type", "price", "capacity", "available")


@admin.register(Hotel)
class HotelAdmin(admin.ModelAdmin):
    list_display = ("name", "city", "country", "star_rating")
    list_filter = ("country", "star_rating")
    search_fields = ("name", "city")
    inlines = [RoomInline]


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("room_number", "hotel", "room_type", "price", "capacity", "available")
    list_filter = ("room_type", "available", "hotel")
    search_fields = ("room_number", "hotel__name")


def _apply(modeladmin, request, queryset, operation, label):
    done = 0
    for booking in queryset:
        try:
            operation(booking.pk)
            done += 1
        except BookingError as exc:
            modeladmin.message_user(request, f"Booking {booking.pk}: {exc.detail}", messages.ERROR)
    if done:
        modeladmin.message_user(request, f"{done} booking(s) {label}.", messages.SUCCESS)


@admin.action(description="Confirm selected bookings")
def confirm_bookings(modeladmin, request, queryset):
    _apply(modeladmin, request, queryset, booking_engine().confirm_booking, "confirmed")


@admin.action(description="Cancel selected bookings")
def cancel_bookings(modeladmin, request, queryset):
    _apply(modeladmin, request, queryset, booking_engine().cancel_booking, "cancelled")


@admin.action(description="Complete selected bookings")
def complete_bookings(modeladmin, request, queryset):
    _apply(modeladmin, request, queryset, booking_engine().complete_booking, "completed")


@admin.action(description="Record payment for selected bookings")
def record_payments(modeladmin, request, queryset):
    _apply(modeladmin, request, queryset, booking_engine().record_payment, "marked as paid")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Bookings are read-only here; every change goes through the booking engine."""
    list_display = ("id", "room", "user", "check_in_date", "check_out_date", "status", "payment_status", "total_price")
    list_filter = ("status", "payment_status", "room__hotel")
    search_fields = ("user__email", "user__username", "room__room_number")
    date_hierarchy = "check_in_date"
    actions = [confirm_bookings, cancel_bookings, complete_bookings, record_payments]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in Booking._meta.fields]

    def has_add_permission(self, request):
        return False

    def delete_model(self, request, obj):
        booking_engine().delete_booking(obj.pk)

    def delete_queryset(self, request, queryset):
        for booking in queryset:
            booking_engine().delete_booking(booking.pk)
