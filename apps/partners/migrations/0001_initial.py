import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Partner',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, verbose_name='name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email')),
                ('partner_type', models.CharField(choices=[('supplier', 'Supplier'), ('hotel', 'Hotel')], default='supplier', max_length=20, verbose_name='partner type')),
                ('stripe_account_id', models.CharField(blank=True, max_length=255, verbose_name='Stripe account ID')),
                ('stripe_onboarding_complete', models.BooleanField(default=False, help_text='Suppliers cannot accept requests until payouts are enabled', verbose_name='Stripe onboarding complete')),
            ],
            options={
                'verbose_name': 'partner',
                'verbose_name_plural': 'partners',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['partner_type'], name='partners_pa_partner_5f1c2e_idx'),
                    models.Index(fields=['stripe_account_id'], name='partners_pa_stripe__8a3d41_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='HotelConfig',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('slug', models.SlugField(unique=True, verbose_name='slug')),
                ('display_name', models.CharField(max_length=255, verbose_name='display name')),
                ('is_active', models.BooleanField(default=True, verbose_name='is active')),
                ('partner', models.ForeignKey(limit_choices_to={'partner_type': 'hotel'}, on_delete=django.db.models.deletion.CASCADE, related_name='hotel_configs', to='partners.partner', verbose_name='hotel')),
            ],
            options={
                'verbose_name': 'hotel config',
                'verbose_name_plural': 'hotel configs',
                'ordering': ['display_name'],
            },
        ),
    ]
