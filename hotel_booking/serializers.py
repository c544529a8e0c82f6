from datetime import datetime, time

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import serializers

from . import pricing
from .apps import booking_engine
from .engine import is_cancellable
from .models import Booking, Hotel, Room


def _configured_time(name, default):
    hours, minutes = getattr(settings, name, default).split(":")
    return time(int(hours), int(minutes))


class StayDateTimeField(serializers.DateTimeField):
    """Accepts full ISO datetimes or plain ``YYYY-MM-DD`` dates.

    A plain date is placed at the hotel's check-in or check-out time in the
    project time zone.
    """

    def __init__(self, time_setting, default_time, **kwargs):
        self.time_setting = time_setting
        self.default_time = default_time
        super().__init__(**kwargs)

    def to_internal_value(self, value):
        if isinstance(value, str) and len(value) == 10:
            day = parse_date(value)
            if day is not None:
                at = _configured_time(self.time_setting, self.default_time)
                return timezone.make_aware(datetime.combine(day, at))
        return super().to_internal_value(value)


def check_in_field(**kwargs):
    return StayDateTimeField("BOOKING_CHECK_IN_TIME", "15:00", **kwargs)


def check_out_field(**kwargs):
    return StayDateTimeField("BOOKING_CHECK_OUT_TIME", "11:00", **kwargs)


class HotelSerializer(serializers.ModelSerializer):
    room_count = serializers.IntegerField(source="rooms.count", read_only=True)

    class Meta:
        model = Hotel
        fields = '__all__'


class RoomSerializer(serializers.ModelSerializer):

    class Meta:
        model = Room
        fields = '__all__'

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['hotel_name'] = instance.hotel.name
        return data


class BookingSerializer(serializers.ModelSerializer):
    room = RoomSerializer(read_only=True)
    room_id = serializers.IntegerField(read_only=True)
    user_id = serializers.IntegerField(read_only=True)
    nights = serializers.SerializerMethodField()
    cancellable = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            'id', 'room', 'room_id', 'user_id', 'check_in_date', 'check_out_date', 'number_of_guests',
            'total_price', 'status', 'payment_status', 'special_requests', 'nights', 'cancellable',
            'version', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_nights(self, instance):
        return pricing.nights(instance.check_in_date, instance.check_out_date)

    def get_cancellable(self, instance):
        return is_cancellable(instance, now=booking_engine().clock())


class BookingCreateSerializer(serializers.Serializer):
    room_id = serializers.IntegerField()
    check_in_date = check_in_field()
    check_out_date = check_out_field()
    number_of_guests = serializers.IntegerField(min_value=1)
    special_requests = serializers.CharField(allow_blank=True, required=False, default="")
    # Both required: the caller states which checkout flow produced the booking.
    initial_status = serializers.ChoiceField(choices=[Booking.Status.PENDING, Booking.Status.CONFIRMED])
    payment_status = serializers.ChoiceField(choices=[Booking.PaymentStatus.UNPAID, Booking.PaymentStatus.PAID])

    def create(self, validated):
        return booking_engine().create_booking(
            user_id=self.context['request'].user.id,
            room_id=validated['room_id'],
            check_in=validated['check_in_date'],
            check_out=validated['check_out_date'],
            number_of_guests=validated['number_of_guests'],
            initial_state=(validated['initial_status'], validated['payment_status']),
            special_requests=validated.get('special_requests', ""),
        )

    def to_representation(self, instance):
        return BookingSerializer(instance, context=self.context).data


class StatusTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.Status.choices)


class AvailabilityQuerySerializer(serializers.Serializer):
    check_in = check_in_field()
    check_out = check_out_field()

    def validate(self, data):
        if data['check_out'] <= data['check_in']:
            raise serializers.ValidationError("check_out must be after check_in")
        return data


class BookingFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.Status.choices, required=False)
    payment_status = serializers.ChoiceField(choices=Booking.PaymentStatus.choices, required=False)
    from_date = check_in_field(required=False)
    to_date = check_out_field(required=False)
    user = serializers.IntegerField(required=False)
    room = serializers.IntegerField(required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)
    offset = serializers.IntegerField(min_value=0, required=False)
