"""Reservation and queueing engine.

This package contains the models, services, serializers, views and
WebSocket consumers for bed reservations, emergency admissions and
the outpatient token queue.
"""
