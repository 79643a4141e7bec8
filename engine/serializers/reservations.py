from rest_framework import serializers

from engine.models import Reservation, ResourceUnit
from .common import ProfileSerializer


class ReservationCreateSerializer(ProfileSerializer):
    facilityId = serializers.IntegerField()
    category = serializers.ChoiceField(choices=[c for c, _ in ResourceUnit.CATEGORY_CHOICES])


class ReservationListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s for s, _ in Reservation.STATUS_CHOICES], required=False)
