import django.core.validators
from django.db import migrations, models
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='RetailFile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('file_name', models.CharField(max_length=255)),
                ('file_url', models.CharField(max_length=500)),
                ('file_size', models.BigIntegerField(blank=True, help_text='Size in bytes', null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('upload_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('status', models.CharField(choices=[('PENDING', 'File upload pending processing'), ('PROCESSING', 'File is currently being processed'), ('COMPLETED', 'File processing completed successfully'), ('FAILED', 'File processing failed'), ('ARCHIVED', 'File has been archived')], default='PENDING', max_length=20)),
                ('checksum', models.CharField(blank=True, help_text='SHA-256 hex digest, derived from the URL when not supplied', max_length=64, null=True, unique=True)),
                ('store_id', models.UUIDField(blank=True, db_index=True, help_text='Store registry identifier of the owning store', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'retail_files',
                'ordering': ['-upload_date'],
            },
        ),
        migrations.AddIndex(
            model_name='retailfile',
            index=models.Index(fields=['status'], name='retail_files_status_idx'),
        ),
        migrations.AddIndex(
            model_name='retailfile',
            index=models.Index(fields=['upload_date'], name='retail_files_upload_date_idx'),
        ),
    ]
