from django.contrib import admin
from .models import LetterAttachment, LetterRequest


class LetterAttachmentInline(admin.TabularInline):
    model = LetterAttachment
    extra = 0
    readonly_fields = ['id', 'uploaded_at', 'uploaded_by']


@admin.register(LetterRequest)
class LetterRequestAdmin(admin.ModelAdmin):
    list_display = ['document_number', 'letter_type', 'category', 'applicant_name', 'status', 'is_archived', 'created_at']
    list_filter = ['status', 'category', 'is_archived']
    search_fields = ['document_number', 'applicant_name', 'applicant_national_id']
    readonly_fields = [
        'id', 'document_number', 'status', 'created_by', 'processed_by',
        'submitted_at', 'processing_started_at', 'completed_at', 'rejected_at',
        'created_at', 'updated_at',
    ]
    inlines = [LetterAttachmentInline]
    ordering = ['-created_at']

    def has_delete_permission(self, request, obj=None):
        # Numbered letters are permanent records
        if obj is not None and obj.document_number:
            return False
        return super().has_delete_permission(request, obj)
