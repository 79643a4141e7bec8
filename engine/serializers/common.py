import bleach
from rest_framework import serializers


def clean_text(v):
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


class ProfileSerializer(serializers.Serializer):
    """Requester profile carried on reservations, admissions and queue entries."""
    patientName = serializers.CharField(required=False, allow_blank=True, max_length=128)
    patientPhone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    patientAge = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=130)
    medicalCondition = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_patientName(self, v):
        return clean_text(v)

    def validate_patientPhone(self, v):
        return clean_text(v)

    def validate_medicalCondition(self, v):
        return clean_text(v)

    def to_profile(self) -> dict:
        vd = self.validated_data
        mapping = {
            'patientName': 'patient_name',
            'patientPhone': 'patient_phone',
            'patientAge': 'patient_age',
            'medicalCondition': 'medical_condition',
        }
        return {dst: vd[src] for src, dst in mapping.items() if src in vd}
