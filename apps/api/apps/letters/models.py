"""
Letter request models.

A LetterRequest is a citizen's request for an official letter. The applicant
data is a snapshot taken when the request is written, never a live reference
to a user account.
"""
import uuid
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from apps.authz.models import national_id_validator
from apps.letters.catalog import CATEGORY_CHOICES, LETTER_TYPE_CHOICES, get_letter_type


class LetterStatusChoices(models.TextChoices):
    """
    Letter status choices with state machine.

    Transitions:
    - draft -> submitted
    - submitted -> processing, rejected
    - processing -> completed, rejected
    - completed -> (terminal)
    - rejected -> (terminal)

    Archiving is a separate flag and never changes the status.
    """
    DRAFT = 'draft', 'Draft'
    SUBMITTED = 'submitted', 'Submitted'
    PROCESSING = 'processing', 'Processing'
    COMPLETED = 'completed', 'Completed'
    REJECTED = 'rejected', 'Rejected'


TERMINAL_STATUSES = (LetterStatusChoices.COMPLETED, LetterStatusChoices.REJECTED)


class GenderChoices(models.TextChoices):
    MALE = 'Laki-laki', 'Laki-laki'
    FEMALE = 'Perempuan', 'Perempuan'


def archive_cutoff(now=None):
    """Records created before this moment count as archived."""
    now = now or timezone.now()
    try:
        return now.replace(year=now.year - 1)
    except ValueError:
        # 29 February
        return now - timedelta(days=365)


class LetterRequestQuerySet(models.QuerySet):

    def archived(self, now=None):
        """Flagged as archived OR older than one year."""
        return self.filter(Q(is_archived=True) | Q(created_at__lt=archive_cutoff(now)))

    def active(self, now=None):
        return self.filter(is_archived=False, created_at__gte=archive_cutoff(now))

    def visible_to(self, user):
        """Citizens see what they authored; office staff see everything."""
        if user.is_office_staff:
            return self
        return self.filter(created_by=user)


class LetterRequest(models.Model):
    """
    Letter request with document number, applicant snapshot and lifecycle.

    Business Rules:
    - document_number is unique and immutable once assigned
    - letter_type must belong to category
    - applicant name and national ID are mandatory
    - only drafts may change letter type or category
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    document_number = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        editable=False,
        help_text='Assigned on completion, e.g. 005/001/Kel.Sindangrasa/2025'
    )
    letter_type = models.CharField(max_length=64, choices=LETTER_TYPE_CHOICES)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES)

    # Applicant snapshot
    applicant_name = models.CharField(max_length=255)
    applicant_national_id = models.CharField(max_length=16, validators=[national_id_validator])
    applicant_birth_place = models.CharField(max_length=100, blank=True)
    applicant_birth_date = models.DateField(null=True, blank=True)
    applicant_gender = models.CharField(max_length=10, choices=GenderChoices.choices, blank=True)
    applicant_religion = models.CharField(max_length=50, blank=True)
    applicant_occupation = models.CharField(max_length=100, blank=True)
    applicant_marital_status = models.CharField(max_length=50, blank=True)
    applicant_nationality = models.CharField(max_length=50, default='WNI')
    applicant_address = models.TextField(blank=True)
    applicant_phone = models.CharField(max_length=20, blank=True)
    applicant_email = models.EmailField(blank=True)

    payload = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)

    status = models.CharField(
        max_length=16,
        choices=LetterStatusChoices.choices,
        default=LetterStatusChoices.DRAFT,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='authored_letters'
    )
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='processed_letters'
    )

    # Signer block, defaulted from the author's role at creation
    signer_name = models.CharField(max_length=255, blank=True)
    signer_title = models.CharField(max_length=255, blank=True)
    signer_employee_number = models.CharField(max_length=32, blank=True)

    submitted_at = models.DateTimeField(null=True, blank=True)
    processing_started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    is_archived = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LetterRequestQuerySet.as_manager()

    class Meta:
        db_table = 'letter_request'
        verbose_name = 'Letter Request'
        verbose_name_plural = 'Letter Requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_letter_status'),
            models.Index(fields=['category', 'letter_type'], name='idx_letter_category_type'),
            models.Index(fields=['created_by', 'status'], name='idx_letter_author_status'),
            models.Index(fields=['completed_at'], name='idx_letter_completed'),
        ]

    def __str__(self):
        return f'{self.letter_type} for {self.applicant_name} ({self.status})'

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_number = getattr(instance, 'document_number', None)
        return instance

    @property
    def is_terminal_status(self):
        return self.status in TERMINAL_STATUSES

    @property
    def is_effectively_archived(self):
        return self.is_archived or self.created_at < archive_cutoff()

    @property
    def letter_type_label(self):
        entry = get_letter_type(self.letter_type)
        return entry.label if entry else self.letter_type

    def clean(self):
        super().clean()

        # INVARIANT: letter type belongs to category
        entry = get_letter_type(self.letter_type)
        if entry is not None and self.category and entry.category != self.category:
            raise ValidationError({
                'category': f'Letter type "{self.letter_type}" belongs to "{entry.category}", not "{self.category}".'
            })

        # INVARIANT: document number immutable once assigned
        loaded = getattr(self, '_loaded_number', None)
        if loaded and self.document_number != loaded:
            raise ValidationError({'document_number': 'Document number cannot be changed once assigned.'})

        if self.status == LetterStatusChoices.COMPLETED and not self.document_number:
            raise ValidationError({'document_number': 'A completed letter must carry a document number.'})

    def save(self, *args, **kwargs):
        """Enforce full_clean() so admin edits obey the same rules."""
        if not kwargs.pop('skip_validation', False):
            self.full_clean()
        super().save(*args, **kwargs)
        self._loaded_number = self.document_number

    @classmethod
    def get_valid_transitions(cls):
        """
        Returns dict: {current_status: [allowed_next_statuses]}
        """
        return {
            LetterStatusChoices.DRAFT: [LetterStatusChoices.SUBMITTED],
            LetterStatusChoices.SUBMITTED: [LetterStatusChoices.PROCESSING, LetterStatusChoices.REJECTED],
            LetterStatusChoices.PROCESSING: [LetterStatusChoices.COMPLETED, LetterStatusChoices.REJECTED],
            LetterStatusChoices.COMPLETED: [],  # Terminal
            LetterStatusChoices.REJECTED: [],   # Terminal
        }

    def can_transition_to(self, new_status):
        return new_status in self.get_valid_transitions().get(self.status, [])


class LetterAttachment(models.Model):
    """
    File metadata attached to a letter request. The file itself lives in
    external storage; only its locator is kept.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    letter = models.ForeignKey(
        LetterRequest,
        on_delete=models.CASCADE,
        related_name='attachments'
    )
    filename = models.CharField(max_length=255)
    storage_url = models.URLField(max_length=1000)
    mime_type = models.CharField(max_length=100)
    size_bytes = models.PositiveBigIntegerField()
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'letter_attachment'
        verbose_name = 'Letter Attachment'
        verbose_name_plural = 'Letter Attachments'
        ordering = ['uploaded_at']

    def __str__(self):
        return self.filename
