import django.core.validators
from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Store',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('chain_id', models.CharField(help_text='Retail chain the store belongs to', max_length=20)),
                ('store_number', models.IntegerField(help_text='Store number unique within the chain')),
                ('store_type', models.CharField(blank=True, max_length=10, null=True)),
                ('store_name', models.CharField(blank=True, max_length=100, null=True)),
                ('sub_chain_id', models.IntegerField(blank=True, help_text='Sub-chain identifier, positive', null=True, validators=[django.core.validators.MinValueValidator(1)])),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('last_modified_by', models.CharField(blank=True, max_length=100, null=True)),
                ('version', models.IntegerField(default=0, help_text='Optimistic concurrency counter')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'stores',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='store',
            index=models.Index(fields=['chain_id'], name='stores_chain_id_idx'),
        ),
        migrations.AddIndex(
            model_name='store',
            index=models.Index(fields=['store_type'], name='stores_store_type_idx'),
        ),
        migrations.AddIndex(
            model_name='store',
            index=models.Index(fields=['sub_chain_id'], name='stores_sub_chain_id_idx'),
        ),
        migrations.AddConstraint(
            model_name='store',
            constraint=models.UniqueConstraint(fields=('store_number', 'chain_id'), name='uk_store_number_chain_id'),
        ),
    ]
