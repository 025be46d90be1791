from django.urls import path
from .views import (
    garage_list_create, garage_count, garage_detail, my_garages, garage_search,
    garage_slots, available_slots, slot_detail,
    verification_list_create, verification_count,
    review_list_create, review_count, review_detail,
)

urlpatterns = [
    # Garage endpoints
    path('garages/', garage_list_create, name='garage-list-create'),
    path('garages/count/', garage_count, name='garage-count'),
    path('garages/my/', my_garages, name='my-garages'),
    path('garages/search/', garage_search, name='garage-search'),
    path('garages/<int:pk>/', garage_detail, name='garage-detail'),

    # Slot endpoints
    path('garages/<int:garage_id>/slots/', garage_slots, name='garage-slots'),
    path('garages/<int:garage_id>/slots/available/', available_slots, name='available-slots'),
    path('slots/<int:pk>/', slot_detail, name='slot-detail'),

    # Verification endpoints
    path('verifications/', verification_list_create, name='verification-list-create'),
    path('verifications/count/', verification_count, name='verification-count'),

    # Review endpoints
    path('reviews/', review_list_create, name='review-list-create'),
    path('reviews/count/', review_count, name='review-count'),
    path('reviews/<int:pk>/', review_detail, name='review-detail'),
]
