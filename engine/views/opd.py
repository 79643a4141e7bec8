"""
OPD token queue endpoints.

Patients join a facility's outpatient queue and receive the next token;
staff advance the queue one consultation at a time.  Positions are
computed on every read so they always agree with the queue snapshot.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsStaffRole
from ..serializers.opd import QueueJoinSerializer
from ..services import opd as svc
from ..services.snapshots import format_queue_entry


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def join_queue(request):
    s = QueueJoinSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = svc.join_queue(
        request.user,
        vd['facilityId'],
        department=vd.get('department') or 'General',
        profile={'patient_name': vd['patientName'], 'patient_phone': vd.get('patientPhone', '')},
    )
    return Response({
        'ok': True,
        'message': 'Successfully joined OPD queue',
        'tokenNumber': entry.token_number,
        'estimatedWait': entry.estimated_wait,
        'entry': format_queue_entry(entry, include_requester=True),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def advance_queue(request, facility_id: int):
    result = svc.advance_queue(request.user, facility_id)
    return Response({
        'ok': True,
        'message': result.message,
        'entry': format_queue_entry(result.entry, include_requester=True) if result.entry else None,
        'completed': [e.token_number for e in result.completed],
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def queue_status(request, facility_id: int):
    return Response({'ok': True, **svc.queue_snapshot(facility_id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_position(request):
    found = svc.my_position(request.user)
    if found is None:
        return Response({'ok': True, 'inQueue': False, 'message': 'Not in any queue'})
    entry, position = found
    return Response({
        'ok': True,
        'inQueue': True,
        'position': position,
        'facilityName': entry.facility.name,
        'entry': format_queue_entry(entry, include_requester=True),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def leave_queue(request, pk: int):
    entry = svc.leave_queue(request.user, pk)
    return Response({'ok': True, 'entry': format_queue_entry(entry, include_requester=True)})
