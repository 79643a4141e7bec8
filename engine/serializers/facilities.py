from rest_framework import serializers

from engine.models import ResourceUnit
from .common import clean_text


class FacilityCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128)
    city = serializers.CharField(required=False, allow_blank=True, max_length=64)
    address = serializers.CharField(required=False, allow_blank=True, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    opdAvailable = serializers.BooleanField(required=False, default=True)
    emergencyAvailable = serializers.BooleanField(required=False, default=True)

    def validate_name(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Facility name is required')
        return v

    def validate_city(self, v):
        return clean_text(v)

    def validate_address(self, v):
        return clean_text(v)


class UnitCreateSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=[c for c, _ in ResourceUnit.CATEGORY_CHOICES])
    unitNumber = serializers.CharField(max_length=32)
    floor = serializers.IntegerField(required=False, allow_null=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)

    def validate_unitNumber(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Bed number is required')
        return v


class UnitUpdateSerializer(UnitCreateSerializer):
    category = serializers.ChoiceField(choices=[c for c, _ in ResourceUnit.CATEGORY_CHOICES], required=False)
    unitNumber = serializers.CharField(max_length=32, required=False)


class UnitListQuerySerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=[c for c, _ in ResourceUnit.CATEGORY_CHOICES], required=False)
    isOccupied = serializers.BooleanField(required=False, allow_null=True, default=None)
