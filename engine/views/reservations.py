"""
Bed reservation endpoints.

Requesters create a provisional reservation, confirm it within the
provisional window (which claims a bed) or cancel it.  Staff move
confirmed reservations to admitted and discharge them, which frees the
bed again.  All state changes go through :mod:`engine.services.reservations`.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import AuthorizationError
from ..permissions import IsStaffRole, STAFF_ROLES
from ..serializers.reservations import ReservationCreateSerializer, ReservationListQuerySerializer
from ..services import reservations as svc


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_reservation(request):
    s = ReservationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    reservation = svc.create_reservation(
        request.user, s.validated_data['facilityId'], s.validated_data['category'], s.to_profile(),
    )
    return Response({
        'ok': True,
        'message': 'Reservation created. Please confirm within the provisional window.',
        'reservation': svc.format_reservation(reservation),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def reservation_detail(request, pk: int):
    reservation = svc.get_reservation(pk)
    if reservation.requester_id != request.user.id and request.user.role not in STAFF_ROLES:
        raise AuthorizationError('Not authorized for this reservation')
    return Response({'ok': True, 'reservation': svc.format_reservation(reservation)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def confirm_reservation(request, pk: int):
    reservation = svc.confirm_reservation(request.user, pk)
    return Response({
        'ok': True,
        'message': 'Reservation confirmed successfully',
        'reservation': svc.format_reservation(reservation),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_reservation(request, pk: int):
    reservation = svc.cancel_reservation(request.user, pk)
    return Response({
        'ok': True,
        'message': 'Reservation cancelled successfully',
        'reservation': svc.format_reservation(reservation),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def admit_reservation(request, pk: int):
    reservation = svc.admit_reservation(request.user, pk)
    return Response({'ok': True, 'reservation': svc.format_reservation(reservation)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def discharge_reservation(request, pk: int):
    reservation = svc.discharge_reservation(request.user, pk)
    return Response({'ok': True, 'reservation': svc.format_reservation(reservation)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_reservations(request):
    items = [svc.format_reservation(r) for r in svc.list_for_requester(request.user)]
    return Response({'ok': True, 'count': len(items), 'reservations': items})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def facility_reservations(request, facility_id: int):
    q = ReservationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = svc.list_for_facility(facility_id, status=q.validated_data.get('status'))
    items = [svc.format_reservation(r) for r in qs]
    return Response({'ok': True, 'count': len(items), 'reservations': items})
