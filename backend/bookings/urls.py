from django.urls import path
from .views import (
    booking_price, booking_list_create, my_bookings, garage_bookings, booking_detail, booking_timeline,
    assign_valet, update_booking_status, valet_pickups, valet_drops,
)

urlpatterns = [
    # Booking endpoints
    path('bookings/', booking_list_create, name='booking-list-create'),
    path('bookings/price/', booking_price, name='booking-price'),
    path('bookings/my/', my_bookings, name='my-bookings'),
    path('bookings/<int:pk>/', booking_detail, name='booking-detail'),
    path('bookings/<int:pk>/timeline/', booking_timeline, name='booking-timeline'),
    path('bookings/<int:pk>/assign-valet/', assign_valet, name='booking-assign-valet'),
    path('bookings/<int:pk>/status/', update_booking_status, name='booking-status'),
    path('garages/<int:garage_id>/bookings/', garage_bookings, name='garage-bookings'),

    # Valet trip endpoints
    path('trips/pickups/', valet_pickups, name='valet-pickups'),
    path('trips/drops/', valet_drops, name='valet-drops'),
]
