"""
Emergency admission endpoints.

An emergency either gets a bed in the same request or is rejected with
HTTP 503; there is no waiting list.  Staff triage admissions by priority
and move them forward through their treatment status.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..exceptions import AuthorizationError
from ..permissions import IsAdminRole, IsStaffRole
from ..serializers.emergency import (
    EmergencyCreateSerializer,
    EmergencyListQuerySerializer,
    EmergencyStatusSerializer,
)
from ..services import emergency as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def emergencies(request):
    """POST admits a patient; GET lists admissions by priority (staff only)."""
    if request.method == 'GET':
        if not IsStaffRole().has_permission(request, None):
            raise AuthorizationError('Staff access required')
        q = EmergencyListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        qs = svc.list_by_priority(vd.get('facilityId'), status=vd.get('status'), priority=vd.get('priority'))
        items = [svc.format_admission(a) for a in qs]
        return Response({'ok': True, 'count': len(items), 'emergencies': items})

    s = EmergencyCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    admission = svc.admit_emergency(
        request.user,
        vd['facilityId'],
        category=vd['category'],
        priority=vd['priority'],
        emergency_type=vd['emergencyType'],
        symptoms=vd['symptoms'],
        vital_signs=dict(vd.get('vitalSigns') or {}),
        profile=s.to_profile(),
    )
    return Response({
        'ok': True,
        'message': 'Emergency admission successful',
        'emergency': svc.format_admission(admission),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_emergencies(request):
    items = [svc.format_admission(a) for a in svc.list_for_requester(request.user)]
    return Response({'ok': True, 'count': len(items), 'emergencies': items})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def emergency_detail(request, pk: int):
    admission = svc.get_admission(request.user, pk)
    return Response({'ok': True, 'emergency': svc.format_admission(admission)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def emergency_update_status(request, pk: int):
    s = EmergencyStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    admission = svc.update_emergency_status(
        request.user, pk, s.validated_data['status'], s.validated_data.get('notes'),
    )
    return Response({
        'ok': True,
        'message': 'Emergency status updated',
        'emergency': svc.format_admission(admission),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def emergency_stats(request):
    facility_id = request.query_params.get('facilityId')
    return Response({'ok': True, 'stats': svc.emergency_stats(int(facility_id) if facility_id and facility_id.isdigit() else None)})


@api_view(['GET'])
@permission_classes([AllowAny])
def facility_capacity(request, facility_id: int):
    return Response({'ok': True, **svc.check_capacity(facility_id)})
