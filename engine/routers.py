"""
URL mappings for the engine API.

Paths carry no trailing slash, matching ``APPEND_SLASH = False`` in the
project settings.
"""
from django.urls import path, include

from .auth_views import login_view
from .views import emergencies, facilities, health, opd, reservations


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    # Facility / bed directory
    path('api/facilities', facilities.facilities),
    path('api/facilities/<int:facility_id>/units', facilities.facility_units),
    path('api/facilities/<int:facility_id>/capacity', emergencies.facility_capacity),
    path('api/facilities/<int:facility_id>/reservations', reservations.facility_reservations),
    path('api/units/<int:pk>/update', facilities.update_unit),
    path('api/units/<int:pk>/delete', facilities.delete_unit),
    # Reservations
    path('api/reservations', reservations.create_reservation),
    path('api/reservations/mine', reservations.my_reservations),
    path('api/reservations/<int:pk>', reservations.reservation_detail),
    path('api/reservations/<int:pk>/confirm', reservations.confirm_reservation),
    path('api/reservations/<int:pk>/cancel', reservations.cancel_reservation),
    path('api/reservations/<int:pk>/admit', reservations.admit_reservation),
    path('api/reservations/<int:pk>/discharge', reservations.discharge_reservation),
    # Emergency admissions
    path('api/emergencies', emergencies.emergencies),
    path('api/emergencies/mine', emergencies.my_emergencies),
    path('api/emergencies/stats', emergencies.emergency_stats),
    path('api/emergencies/<int:pk>', emergencies.emergency_detail),
    path('api/emergencies/<int:pk>/status', emergencies.emergency_update_status),
    # OPD queue
    path('api/opd/join', opd.join_queue),
    path('api/opd/my-position', opd.my_position),
    path('api/opd/entries/<int:pk>/leave', opd.leave_queue),
    path('api/opd/<int:facility_id>/advance', opd.advance_queue),
    path('api/opd/<int:facility_id>/status', opd.queue_status),
]
