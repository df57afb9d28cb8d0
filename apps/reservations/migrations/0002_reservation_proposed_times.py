from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('reservations', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='reservation',
            name='proposed_times',
            field=models.JSONField(blank=True, default=list, help_text="Alternative slots offered by the supplier: [{'date': 'YYYY-MM-DD', 'time': 'HH:MM'}]", verbose_name='proposed times'),
        ),
        migrations.AlterField(
            model_name='reservation',
            name='status',
            field=models.CharField(choices=[('pending', 'Pending'), ('pending_minimum', 'Pending minimum'), ('proposed', 'Alternative times proposed'), ('approved', 'Approved'), ('declined', 'Declined'), ('expired', 'Expired'), ('cancelled_minimum', 'Cancelled (minimum not reached)'), ('confirmed', 'Confirmed'), ('completed', 'Completed'), ('refunded', 'Refunded')], default='pending', max_length=20, verbose_name='status'),
        ),
    ]
