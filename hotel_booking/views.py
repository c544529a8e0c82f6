import logging

from django.db.models import Exists, OuterRef
from django.http import JsonResponse
from rest_framework import permissions, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .apps import booking_engine, booking_queries
from .models import Booking, Hotel, Room
from .serializers import (
    AvailabilityQuerySerializer,
    BookingCreateSerializer,
    BookingFilterSerializer,
    BookingSerializer,
    HotelSerializer,
    RoomSerializer,
    StatusTransitionSerializer,
)

logger = logging.getLogger(__name__)


def welcome(request):
    return JsonResponse({"message": "Welcome to the Hotel Booking System"})

def health_check(request):
    return JsonResponse({"status": "ok"})

def available_rooms_qs(check_in, check_out, max_price=None, hotel_id=None):
    overlap = Exists(
        Booking.objects.filter(
            room=OuterRef('pk'),
            check_in_date__lt=check_out,
            check_out_date__gt=check_in,
        ).exclude(status=Booking.Status.CANCELLED)
    )
    qs = Room.objects.select_related('hotel').filter(available=True).annotate(has_overlap=overlap).filter(has_overlap=False)
    if max_price is not None:
        qs = qs.filter(price__lte=max_price)
    if hotel_id is not None:
        qs = qs.filter(hotel_id=hotel_id)
    return qs


class IsAdminOrReadOnly(permissions.BasePermission):

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class HotelViewSet(viewsets.ModelViewSet):
    queryset = Hotel.objects.all()
    serializer_class = HotelSerializer
    permission_classes = [IsAdminOrReadOnly]

    @action(detail=True, methods=['get'])
    def rooms(self, request, pk=None):
        """Rooms of one hotel"""
        hotel = self.get_object()
        serializer = RoomSerializer(hotel.rooms.select_related('hotel'), many=True)
        return Response(serializer.data)


class RoomViewSet(viewsets.ModelViewSet):
    queryset = Room.objects.select_related('hotel')
    serializer_class = RoomSerializer
    permission_classes = [IsAdminOrReadOnly]

    def list(self, request):
        """List rooms, only free ones when a check_in/check_out range is given"""
        params = request.query_params
        hotel_id = params.get('hotel')
        max_price = params.get('max_price')

        try:
            hotel_id = int(hotel_id) if hotel_id else None
            max_price = serializers.DecimalField(max_digits=10, decimal_places=2).to_internal_value(max_price) if max_price else None
        except (ValueError, serializers.ValidationError):
            return Response({'error': 'hotel must be an id and max_price a number'},
                            status=status.HTTP_400_BAD_REQUEST)

        if params.get('check_in') and params.get('check_out'):
            stay = AvailabilityQuerySerializer(data=params)
            stay.is_valid(raise_exception=True)
            rooms = available_rooms_qs(stay.validated_data['check_in'], stay.validated_data['check_out'],
                                       max_price=max_price, hotel_id=hotel_id)
        else:
            rooms = self.get_queryset()
            if max_price is not None:
                rooms = rooms.filter(price__lte=max_price)
            if hotel_id is not None:
                rooms = rooms.filter(hotel_id=hotel_id)

        serializer = self.get_serializer(rooms, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'])
    def availability(self, request, pk=None):
        """Whether the room can be booked for check_in/check_out, with the quoted price"""
        room = self.get_object()
        stay = AvailabilityQuerySerializer(data=request.query_params)
        stay.is_valid(raise_exception=True)
        check_in, check_out = stay.validated_data['check_in'], stay.validated_data['check_out']

        engine = booking_engine()
        return Response({
            'room_id': room.id,
            'check_in': check_in,
            'check_out': check_out,
            'available': engine.is_room_available(room.id, check_in, check_out),
            'total_price': engine.calculate_price(room.price, check_in, check_out),
        })


class BookingViewSet(viewsets.GenericViewSet):
    """The signed-in user's own bookings"""
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request):
        bookings = booking_queries().bookings_for_user(request.user.id)
        serializer = self.get_serializer(bookings, many=True)
        return Response(serializer.data)

    def create(self, request):
        serializer = BookingCreateSerializer(data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        booking = booking_queries().get_booking_for_user(pk, request.user.id)
        return Response(self.get_serializer(booking).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel one of your own bookings before check-in"""
        booking = booking_queries().get_booking_for_user(pk, request.user.id)
        booking = booking_engine().cancel_booking(booking.id)
        return Response(self.get_serializer(booking).data)


class AdminBookingViewSet(viewsets.GenericViewSet):
    """All bookings, for staff"""
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAdminUser]

    def list(self, request):
        filters = BookingFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        params = filters.validated_data

        bookings = booking_queries().all_bookings(
            status=params.get('status'),
            payment_status=params.get('payment_status'),
            from_date=params.get('from_date'),
            to_date=params.get('to_date'),
            user_id=params.get('user'),
            room_id=params.get('room'),
            limit=params.get('limit'),
            offset=params.get('offset'),
        )
        serializer = self.get_serializer(bookings, many=True)
        return Response(serializer.data)

    def retrieve(self, request, pk=None):
        booking = booking_queries().get_booking(pk)
        return Response(self.get_serializer(booking).data)

    def partial_update(self, request, pk=None):
        """Move a booking to another status"""
        transition = StatusTransitionSerializer(data=request.data)
        transition.is_valid(raise_exception=True)
        booking = booking_engine().transition_status(pk, transition.validated_data['status'])
        logger.info("Staff user %s set booking %s to %s", request.user.pk, pk, booking.status)
        return Response(self.get_serializer(booking).data)

    def destroy(self, request, pk=None):
        booking_engine().delete_booking(pk)
        logger.info("Staff user %s deleted booking %s", request.user.pk, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def record_payment(self, request, pk=None):
        """Mark an unpaid booking as paid"""
        booking = booking_engine().record_payment(pk)
        return Response(self.get_serializer(booking).data)
