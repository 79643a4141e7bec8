"""
Facility and bed directory endpoints.

Reading the directory is public.  Creating facilities is reserved for
administrators and bed maintenance for staff; bed writes go through the
pool so occupancy stays consistent and observers are notified.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..exceptions import AuthorizationError
from ..models import Facility, ResourceUnit
from ..permissions import IsAdminOrReadOnly, IsStaffRole
from ..serializers.facilities import (
    FacilityCreateSerializer,
    UnitCreateSerializer,
    UnitListQuerySerializer,
    UnitUpdateSerializer,
)
from ..services import pool


def _facility_payload(f: Facility) -> dict:
    return {
        'id': f.id,
        'name': f.name,
        'city': f.city,
        'address': f.address,
        'phone': f.phone,
        'opdAvailable': f.opd_available,
        'emergencyAvailable': f.emergency_available,
        'beds': pool.availability(f.id),
        'lastUpdated': f.last_updated.isoformat() if f.last_updated else None,
    }


def _unit_payload(u: ResourceUnit) -> dict:
    return {
        'id': u.id,
        'facilityId': u.facility_id,
        'category': u.category,
        'unitNumber': u.unit_number,
        'floor': u.floor,
        'price': str(u.price),
        'isOccupied': u.is_occupied,
        'lastUpdated': u.last_updated.isoformat() if u.last_updated else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def facilities(request):
    if request.method == 'GET':
        qs = Facility.objects.all().order_by('name', 'id')
        city = request.query_params.get('city')
        if city:
            qs = qs.filter(city__iexact=city)
        return Response({'ok': True, 'facilities': [_facility_payload(f) for f in qs]})

    s = FacilityCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    facility = Facility.objects.create(
        name=vd['name'],
        city=vd.get('city', ''),
        address=vd.get('address', ''),
        phone=vd.get('phone', ''),
        opd_available=vd['opdAvailable'],
        emergency_available=vd['emergencyAvailable'],
    )
    return Response({'ok': True, 'facility': _facility_payload(facility)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def facility_units(request, facility_id: int):
    facility = pool.get_facility(facility_id)
    if request.method == 'GET':
        q = UnitListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        units = pool.list_units(
            facility.id, category=q.validated_data.get('category'), is_occupied=q.validated_data.get('isOccupied'),
        )
        return Response({'ok': True, 'units': [_unit_payload(u) for u in units]})

    if not IsStaffRole().has_permission(request, None):
        raise AuthorizationError('Staff access required')
    s = UnitCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    unit = pool.create_unit(
        facility,
        category=vd['category'],
        unit_number=vd['unitNumber'],
        floor=vd.get('floor'),
        price=vd.get('price', 0),
    )
    return Response({'ok': True, 'unit': _unit_payload(unit)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def update_unit(request, pk: int):
    s = UnitUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    names = {'category': 'category', 'unitNumber': 'unit_number', 'floor': 'floor', 'price': 'price'}
    fields = {dst: s.validated_data[src] for src, dst in names.items() if src in s.validated_data}
    unit = pool.update_unit(pk, **fields)
    return Response({'ok': True, 'unit': _unit_payload(unit)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def delete_unit(request, pk: int):
    pool.delete_unit(pk)
    return Response({'ok': True})
