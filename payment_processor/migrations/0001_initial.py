import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PaymentTransaction',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('transaction_type', models.CharField(choices=[('payment_link', 'Create Payment Link'), ('transfer', 'Transfer'), ('refund', 'Refund')], max_length=20)),
                ('reference_id', models.CharField(blank=True, db_index=True, help_text='Reservation or booking the call was made for', max_length=64)),
                ('external_id', models.CharField(blank=True, help_text='Provider object ID', max_length=255)),
                ('request_data', models.JSONField(default=dict)),
                ('response_data', models.JSONField(default=dict)),
                ('is_successful', models.BooleanField(default=False)),
                ('status_code', models.IntegerField(blank=True, null=True)),
                ('error_message', models.TextField(blank=True)),
                ('duration_ms', models.IntegerField(help_text='Request duration in milliseconds', null=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['transaction_type', 'created_at'], name='payment_pro_transac_5b6c7d_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PaymentWebhook',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event_id', models.CharField(max_length=255, unique=True)),
                ('event_type', models.CharField(max_length=100)),
                ('payload', models.JSONField(default=dict)),
                ('status', models.CharField(choices=[('received', 'Received'), ('processed', 'Processed'), ('failed', 'Failed'), ('ignored', 'Ignored')], default='received', max_length=20)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('error_message', models.TextField(blank=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['event_type', 'created_at'], name='payment_pro_event_t_8e9f0a_idx'),
                    models.Index(fields=['status', 'created_at'], name='payment_pro_status_1b2c3d_idx'),
                ],
            },
        ),
    ]
