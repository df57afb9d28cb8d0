import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('partners', '0001_initial'),
        ('experiences', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('guest_name', models.CharField(max_length=255, verbose_name='guest name')),
                ('guest_email', models.EmailField(max_length=254, verbose_name='guest email')),
                ('guest_phone', models.CharField(blank=True, max_length=50, verbose_name='guest phone')),
                ('participants', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)], verbose_name='participants')),
                ('rental_start_date', models.DateField(blank=True, null=True, verbose_name='rental start date')),
                ('rental_end_date', models.DateField(blank=True, null=True, verbose_name='rental end date')),
                ('quantity', models.PositiveIntegerField(blank=True, null=True, verbose_name='quantity')),
                ('total_cents', models.PositiveIntegerField(verbose_name='total (cents)')),
                ('is_request', models.BooleanField(default=False, verbose_name='is request')),
                ('requested_date', models.DateField(blank=True, null=True, verbose_name='requested date')),
                ('requested_time', models.TimeField(blank=True, null=True, verbose_name='requested time')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('pending_minimum', 'Pending minimum'), ('approved', 'Approved'), ('declined', 'Declined'), ('expired', 'Expired'), ('cancelled_minimum', 'Cancelled (minimum not reached)'), ('confirmed', 'Confirmed'), ('completed', 'Completed'), ('refunded', 'Refunded')], default='pending', max_length=20, verbose_name='status')),
                ('response_deadline', models.DateTimeField(verbose_name='response deadline')),
                ('payment_deadline', models.DateTimeField(blank=True, null=True, verbose_name='payment deadline')),
                ('spots_held', models.PositiveIntegerField(default=0, help_text='Session spots currently taken by this reservation', verbose_name='spots held')),
                ('payment_link_id', models.CharField(blank=True, max_length=255, verbose_name='payment link ID')),
                ('payment_link_url', models.URLField(blank=True, max_length=500, verbose_name='payment link URL')),
                ('supplier_message', models.TextField(blank=True, verbose_name='supplier message')),
                ('experience', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='experiences.experience', verbose_name='experience')),
                ('hotel', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='hotel_reservations', to='partners.partner', verbose_name='hotel')),
                ('hotel_config', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reservations', to='partners.hotelconfig', verbose_name='hotel config')),
                ('session', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reservations', to='experiences.experiencesession', verbose_name='session')),
            ],
            options={
                'verbose_name': 'reservation',
                'verbose_name_plural': 'reservations',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'response_deadline'], name='reservation_status_1a2b3c_idx'),
                    models.Index(fields=['status', 'payment_deadline'], name='reservation_status_4d5e6f_idx'),
                    models.Index(fields=['session', 'status'], name='reservation_session_7a8b9c_idx'),
                    models.Index(fields=['experience', 'status'], name='reservation_experie_0d1e2f_idx'),
                    models.Index(fields=['guest_email'], name='reservation_guest_e_3a4b5c_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount_cents', models.PositiveIntegerField(verbose_name='amount (cents)')),
                ('supplier_amount_cents', models.IntegerField(verbose_name='supplier amount (cents)')),
                ('hotel_amount_cents', models.IntegerField(verbose_name='hotel amount (cents)')),
                ('platform_amount_cents', models.IntegerField(verbose_name='platform amount (cents)')),
                ('payment_intent_id', models.CharField(blank=True, db_index=True, max_length=255, verbose_name='payment intent ID')),
                ('charge_id', models.CharField(blank=True, db_index=True, max_length=255, verbose_name='charge ID')),
                ('transfer_id', models.CharField(blank=True, max_length=255, verbose_name='transfer ID')),
                ('refund_id', models.CharField(blank=True, max_length=255, verbose_name='refund ID')),
                ('status', models.CharField(choices=[('confirmed', 'Confirmed'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='confirmed', max_length=20, verbose_name='status')),
                ('paid_at', models.DateTimeField(verbose_name='paid at')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='completed at')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='cancelled at')),
                ('completion_check_sent_at', models.DateTimeField(blank=True, null=True, verbose_name='completion check sent at')),
                ('reservation', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='booking', to='reservations.reservation', verbose_name='reservation')),
                ('session', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='bookings', to='experiences.experiencesession', verbose_name='session')),
            ],
            options={
                'verbose_name': 'booking',
                'verbose_name_plural': 'bookings',
                'ordering': ['-paid_at'],
                'indexes': [
                    models.Index(fields=['status', 'paid_at'], name='reservation_status_6d7e8f_idx'),
                ],
            },
        ),
    ]
