import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('partners', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Experience',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255, verbose_name='title')),
                ('slug', models.SlugField(unique=True, verbose_name='slug')),
                ('description', models.TextField(blank=True, verbose_name='description')),
                ('meeting_point', models.CharField(blank=True, max_length=500, verbose_name='meeting point')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('archived', 'Archived')], default='draft', max_length=20, verbose_name='status')),
                ('pricing_type', models.CharField(choices=[('per_person', 'Per Person'), ('flat_rate', 'Flat Rate'), ('base_plus_extra', 'Base Plus Extra'), ('per_day', 'Per Day')], default='per_person', max_length=20, verbose_name='pricing type')),
                ('base_price_cents', models.PositiveIntegerField(default=0, help_text='Flat rate, or the base covering included participants for base_plus_extra', verbose_name='base price (cents)')),
                ('extra_person_cents', models.PositiveIntegerField(default=0, help_text='Per person unit for per_person, extra participant unit for base_plus_extra', verbose_name='per person price (cents)')),
                ('price_per_day_cents', models.PositiveIntegerField(default=0, verbose_name='price per day (cents)')),
                ('included_participants', models.PositiveIntegerField(default=1, verbose_name='included participants')),
                ('currency', models.CharField(default='EUR', help_text='Currency code (ISO 4217)', max_length=3, verbose_name='currency')),
                ('min_participants', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)], verbose_name='min participants')),
                ('max_participants', models.PositiveIntegerField(default=10, validators=[django.core.validators.MinValueValidator(1)], verbose_name='max participants')),
                ('min_days', models.PositiveIntegerField(default=1, verbose_name='min days')),
                ('max_days', models.PositiveIntegerField(blank=True, null=True, verbose_name='max days')),
                ('requires_minimum', models.BooleanField(default=False, help_text='Session bookings stay conditional until min participants is reached', verbose_name='requires minimum')),
                ('cancellation_policy', models.CharField(choices=[('flexible', 'Flexible'), ('moderate', 'Moderate'), ('strict', 'Strict'), ('non_refundable', 'Non-refundable')], default='moderate', max_length=20, verbose_name='cancellation policy')),
                ('allows_requests', models.BooleanField(default=True, help_text='Guests may request a date/time that has no scheduled session', verbose_name='allows requests')),
                ('partner', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='experiences', to='partners.partner', verbose_name='supplier')),
            ],
            options={
                'verbose_name': 'experience',
                'verbose_name_plural': 'experiences',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['partner', 'status'], name='experiences_partner_3b9e0a_idx'),
                    models.Index(fields=['slug'], name='experiences_slug_6c2f1d_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ExperienceSession',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('session_date', models.DateField(verbose_name='session date')),
                ('start_time', models.TimeField(blank=True, null=True, verbose_name='start time')),
                ('end_date', models.DateField(blank=True, help_text='Last day for rentals', null=True, verbose_name='end date')),
                ('spots_total', models.PositiveIntegerField(verbose_name='total spots')),
                ('spots_available', models.PositiveIntegerField(verbose_name='available spots')),
                ('session_status', models.CharField(choices=[('available', 'Available'), ('booked', 'Booked'), ('cancelled', 'Cancelled')], default='available', max_length=20, verbose_name='status')),
                ('price_override_cents', models.PositiveIntegerField(blank=True, help_text='Replaces the experience unit price for this session', null=True, verbose_name='price override (cents)')),
                ('price_note', models.CharField(blank=True, max_length=255, verbose_name='price note')),
                ('is_private', models.BooleanField(default=False, help_text='Created from an accepted request; never reopened for other guests', verbose_name='is private')),
                ('experience', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sessions', to='experiences.experience', verbose_name='experience')),
            ],
            options={
                'verbose_name': 'experience session',
                'verbose_name_plural': 'experience sessions',
                'ordering': ['session_date', 'start_time'],
                'indexes': [
                    models.Index(fields=['experience', 'session_date'], name='experiences_experie_4d8a2b_idx'),
                    models.Index(fields=['session_status', 'session_date'], name='experiences_session_9e1c7f_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('spots_available__lte', models.F('spots_total'))), name='session_available_lte_total'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Distribution',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('commission_supplier', models.PositiveSmallIntegerField(default=80, validators=[django.core.validators.MaxValueValidator(100)], verbose_name='supplier commission %')),
                ('commission_hotel', models.PositiveSmallIntegerField(default=12, validators=[django.core.validators.MaxValueValidator(100)], verbose_name='hotel commission %')),
                ('commission_platform', models.PositiveSmallIntegerField(default=8, validators=[django.core.validators.MaxValueValidator(100)], verbose_name='platform commission %')),
                ('is_active', models.BooleanField(default=True, verbose_name='is active')),
                ('experience', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='distributions', to='experiences.experience', verbose_name='experience')),
                ('hotel', models.ForeignKey(limit_choices_to={'partner_type': 'hotel'}, on_delete=django.db.models.deletion.CASCADE, related_name='distributions', to='partners.partner', verbose_name='hotel')),
            ],
            options={
                'verbose_name': 'distribution',
                'verbose_name_plural': 'distributions',
                'indexes': [
                    models.Index(fields=['hotel', 'is_active'], name='experiences_hotel_i_2a7e5c_idx'),
                ],
                'unique_together': {('experience', 'hotel')},
            },
        ),
    ]
