# Generated migration for letters app

import uuid
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

from apps.letters.catalog import CATEGORY_CHOICES, LETTER_TYPE_CHOICES


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='LetterRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('document_number', models.CharField(blank=True, editable=False, help_text='Assigned on completion, e.g. 005/001/Kel.Sindangrasa/2025', max_length=64, null=True, unique=True)),
                ('letter_type', models.CharField(choices=LETTER_TYPE_CHOICES, max_length=64)),
                ('category', models.CharField(choices=CATEGORY_CHOICES, max_length=32)),
                ('applicant_name', models.CharField(max_length=255)),
                ('applicant_national_id', models.CharField(max_length=16, validators=[django.core.validators.RegexValidator(code='invalid_national_id', message='National ID (NIK) must be exactly 16 digits.', regex='^\\d{16}$')])),
                ('applicant_birth_place', models.CharField(blank=True, max_length=100)),
                ('applicant_birth_date', models.DateField(blank=True, null=True)),
                ('applicant_gender', models.CharField(blank=True, choices=[('Laki-laki', 'Laki-laki'), ('Perempuan', 'Perempuan')], max_length=10)),
                ('applicant_religion', models.CharField(blank=True, max_length=50)),
                ('applicant_occupation', models.CharField(blank=True, max_length=100)),
                ('applicant_marital_status', models.CharField(blank=True, max_length=50)),
                ('applicant_nationality', models.CharField(default='WNI', max_length=50)),
                ('applicant_address', models.TextField(blank=True)),
                ('applicant_phone', models.CharField(blank=True, max_length=20)),
                ('applicant_email', models.EmailField(blank=True, max_length=254)),
                ('payload', models.JSONField(blank=True, default=dict)),
                ('notes', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('submitted', 'Submitted'), ('processing', 'Processing'), ('completed', 'Completed'), ('rejected', 'Rejected')], default='draft', max_length=16)),
                ('signer_name', models.CharField(blank=True, max_length=255)),
                ('signer_title', models.CharField(blank=True, max_length=255)),
                ('signer_employee_number', models.CharField(blank=True, max_length=32)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('processing_started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('is_archived', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='authored_letters', to=settings.AUTH_USER_MODEL)),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_letters', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Letter Request',
                'verbose_name_plural': 'Letter Requests',
                'db_table': 'letter_request',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_letter_status'),
                    models.Index(fields=['category', 'letter_type'], name='idx_letter_category_type'),
                    models.Index(fields=['created_by', 'status'], name='idx_letter_author_status'),
                    models.Index(fields=['completed_at'], name='idx_letter_completed'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LetterAttachment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('filename', models.CharField(max_length=255)),
                ('storage_url', models.URLField(max_length=1000)),
                ('mime_type', models.CharField(max_length=100)),
                ('size_bytes', models.PositiveBigIntegerField()),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('letter', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='letters.letterrequest')),
                ('uploaded_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Letter Attachment',
                'verbose_name_plural': 'Letter Attachments',
                'db_table': 'letter_attachment',
                'ordering': ['uploaded_at'],
            },
        ),
    ]
