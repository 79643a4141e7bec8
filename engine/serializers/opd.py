from rest_framework import serializers

from .common import clean_text


class QueueJoinSerializer(serializers.Serializer):
    facilityId = serializers.IntegerField()
    department = serializers.CharField(required=False, allow_blank=True, max_length=64)
    patientName = serializers.CharField(max_length=128)
    patientPhone = serializers.CharField(required=False, allow_blank=True, max_length=32)

    def validate_department(self, v):
        return clean_text(v) or 'General'

    def validate_patientName(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Patient name must be at least 2 characters')
        return v

    def validate_patientPhone(self, v):
        return clean_text(v)
