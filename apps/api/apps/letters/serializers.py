"""
Letter serializers.

The applicant snapshot and the signer block are stored flat on the model
but travel as nested objects (`applicant`, `signer`) on the wire.
"""
from rest_framework import serializers

from apps.authz.models import national_id_validator
from apps.letters.catalog import CATEGORY_CHOICES, CATEGORY_LABELS, LETTER_TYPE_CHOICES
from apps.letters.models import GenderChoices, LetterAttachment, LetterRequest


class ApplicantSerializer(serializers.Serializer):
    """Applicant snapshot, mapped onto the applicant_* model fields."""
    name = serializers.CharField(source='applicant_name', max_length=255)
    national_id = serializers.CharField(
        source='applicant_national_id',
        max_length=16,
        validators=[national_id_validator]
    )
    birth_place = serializers.CharField(source='applicant_birth_place', max_length=100, required=False, allow_blank=True)
    birth_date = serializers.DateField(source='applicant_birth_date', required=False, allow_null=True)
    gender = serializers.ChoiceField(
        source='applicant_gender',
        choices=GenderChoices.choices,
        required=False,
        allow_blank=True
    )
    religion = serializers.CharField(source='applicant_religion', max_length=50, required=False, allow_blank=True)
    occupation = serializers.CharField(source='applicant_occupation', max_length=100, required=False, allow_blank=True)
    marital_status = serializers.CharField(
        source='applicant_marital_status',
        max_length=50,
        required=False,
        allow_blank=True
    )
    nationality = serializers.CharField(source='applicant_nationality', max_length=50, required=False)
    address = serializers.CharField(source='applicant_address', required=False, allow_blank=True)
    phone = serializers.CharField(source='applicant_phone', max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(source='applicant_email', required=False, allow_blank=True)


class SignerSerializer(serializers.Serializer):
    name = serializers.CharField(source='signer_name', max_length=255, required=False, allow_blank=True)
    title = serializers.CharField(source='signer_title', max_length=255, required=False, allow_blank=True)
    employee_number = serializers.CharField(
        source='signer_employee_number',
        max_length=32,
        required=False,
        allow_blank=True
    )


class LetterAttachmentSerializer(serializers.ModelSerializer):

    class Meta:
        model = LetterAttachment
        fields = ['id', 'filename', 'storage_url', 'mime_type', 'size_bytes', 'uploaded_at']
        read_only_fields = ['id', 'uploaded_at']


class LetterListSerializer(serializers.ModelSerializer):
    """
    Used for:
    - GET /api/v1/letters/
    - GET /api/v1/letters/archive/
    """
    letter_type_label = serializers.CharField(read_only=True)
    applicant_name = serializers.CharField(read_only=True)
    applicant_national_id = serializers.CharField(read_only=True)

    class Meta:
        model = LetterRequest
        fields = [
            'id',
            'document_number',
            'letter_type',
            'letter_type_label',
            'category',
            'status',
            'applicant_name',
            'applicant_national_id',
            'is_archived',
            'created_by',
            'created_at',
            'completed_at',
        ]
        read_only_fields = fields


class LetterDetailSerializer(serializers.ModelSerializer):
    """
    Full letter representation returned by every endpoint that yields one letter.
    """
    letter_type_label = serializers.CharField(read_only=True)
    category_label = serializers.SerializerMethodField()
    applicant = ApplicantSerializer(source='*', read_only=True)
    signer = SignerSerializer(source='*', read_only=True)
    created_by_name = serializers.CharField(source='created_by.name', read_only=True)
    attachments = LetterAttachmentSerializer(many=True, read_only=True)

    class Meta:
        model = LetterRequest
        fields = [
            'id',
            'document_number',
            'letter_type',
            'letter_type_label',
            'category',
            'category_label',
            'status',
            'applicant',
            'payload',
            'notes',
            'signer',
            'created_by',
            'created_by_name',
            'processed_by',
            'submitted_at',
            'processing_started_at',
            'completed_at',
            'rejected_at',
            'rejection_reason',
            'is_archived',
            'attachments',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_category_label(self, obj):
        return CATEGORY_LABELS.get(obj.category, obj.category)


class LetterWriteSerializer(serializers.Serializer):
    """
    Input for POST /api/v1/letters/ and PUT/PATCH /api/v1/letters/{id}/.

    Validates shapes only. Catalog membership, payload fields and who may
    change what are decided by the letter services.
    """
    letter_type = serializers.ChoiceField(choices=LETTER_TYPE_CHOICES)
    category = serializers.ChoiceField(choices=CATEGORY_CHOICES)
    applicant = ApplicantSerializer(source='*')
    payload = serializers.DictField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    signer = SignerSerializer(source='*', required=False)


class CompleteSerializer(serializers.Serializer):
    signer = SignerSerializer(source='*', required=False)


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ArchiveSerializer(serializers.Serializer):
    """Omit is_archived to flip the flag."""
    is_archived = serializers.BooleanField(required=False, allow_null=True, default=None)


class LetterFilterSerializer(serializers.Serializer):
    """Query parameters of the list endpoints."""
    search = serializers.CharField(required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=CATEGORY_CHOICES, required=False)
    letter_type = serializers.ChoiceField(choices=LETTER_TYPE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=LetterRequest._meta.get_field('status').choices, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    include_archived = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if attrs.get('date_from') and attrs.get('date_to') and attrs['date_from'] > attrs['date_to']:
            raise serializers.ValidationError({'date_to': 'date_to must not be before date_from.'})
        return attrs


class ReportQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(required=False, min_value=2000, max_value=2100)
    month = serializers.IntegerField(required=False, min_value=1, max_value=12)
