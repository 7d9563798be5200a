# appointments/urls.py
from django.urls import path
from . import views

app_name = 'appointments'

urlpatterns = [
    # Availability
    path('slots/', views.get_slots_api, name='slots'),
    path('next-available/', views.get_next_available_api, name='next_available'),

    # Bookings
    path('bookings/', views.bookings_api, name='bookings'),
    path('bookings/<int:pk>/', views.booking_detail_api, name='booking_detail'),

    # Booking actions
    path('bookings/<int:pk>/move/', views.move_booking_api, name='move_booking'),
    path('bookings/<int:pk>/resize/', views.resize_booking_api, name='resize_booking'),
    path('bookings/<int:pk>/status/', views.booking_status_api, name='booking_status'),
    path('bookings/<int:pk>/cancel/', views.cancel_booking_api, name='cancel_booking'),
]
