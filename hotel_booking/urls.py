from rest_framework.routers import DefaultRouter
from hotel_booking.views import AdminBookingViewSet, BookingViewSet, HotelViewSet, RoomViewSet

router = DefaultRouter()
router.register(r'hotels', HotelViewSet)
router.register(r'rooms', RoomViewSet)
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'admin/bookings', AdminBookingViewSet, basename='admin-booking')

urlpatterns = router.urls
