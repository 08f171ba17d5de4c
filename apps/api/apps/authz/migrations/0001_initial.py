# Generated migration for authz app - single-role user model

import uuid
import apps.authz.models
import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('national_id', models.CharField(
                    help_text='NIK, 16 digits',
                    max_length=16,
                    unique=True,
                    validators=[django.core.validators.RegexValidator(
                        code='invalid_national_id',
                        message='National ID (NIK) must be exactly 16 digits.',
                        regex='^\\d{16}$'
                    )]
                )),
                ('email', models.EmailField(max_length=255, unique=True)),
                ('role', models.CharField(
                    choices=[
                        ('citizen', 'Citizen'),
                        ('clerk', 'Clerk'),
                        ('admin', 'Admin')
                    ],
                    default='citizen',
                    max_length=10
                )),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('address', models.TextField(blank=True)),
                ('employee_number', models.CharField(blank=True, help_text='NIP of office staff, printed in signer blocks', max_length=32)),
                ('is_active', models.BooleanField(default=True)),
                ('is_staff', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'auth_user',
                'indexes': [
                    models.Index(fields=['role'], name='idx_user_role'),
                    models.Index(fields=['is_active'], name='idx_user_active'),
                ],
            },
            managers=[
                ('objects', apps.authz.models.UserManager()),
            ],
        ),
    ]
