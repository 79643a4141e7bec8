from rest_framework import serializers

from engine.models import EmergencyAdmission, ResourceUnit
from .common import ProfileSerializer, clean_text


class VitalSignsSerializer(serializers.Serializer):
    bloodPressure = serializers.CharField(required=False, allow_blank=True, max_length=32)
    heartRate = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=400)
    temperature = serializers.FloatField(required=False, allow_null=True, min_value=20, max_value=50)
    oxygenLevel = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=100)


class EmergencyCreateSerializer(ProfileSerializer):
    facilityId = serializers.IntegerField()
    category = serializers.ChoiceField(choices=[c for c, _ in ResourceUnit.CATEGORY_CHOICES])
    priority = serializers.ChoiceField(choices=list(EmergencyAdmission.PRIORITY_RANK))
    emergencyType = serializers.ChoiceField(choices=list(EmergencyAdmission.EMERGENCY_TYPES))
    symptoms = serializers.CharField(max_length=2000)
    vitalSigns = VitalSignsSerializer(required=False)

    def validate_symptoms(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Symptoms are required')
        return v


class EmergencyStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=list(EmergencyAdmission.STATUS_ORDER))
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_notes(self, v):
        return clean_text(v)


class EmergencyListQuerySerializer(serializers.Serializer):
    facilityId = serializers.IntegerField(required=False)
    status = serializers.ChoiceField(choices=list(EmergencyAdmission.STATUS_ORDER), required=False)
    priority = serializers.ChoiceField(choices=list(EmergencyAdmission.PRIORITY_RANK), required=False)
