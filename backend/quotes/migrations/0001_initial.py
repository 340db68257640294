
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import quotes.models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Quote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('reference', models.CharField(db_index=True, default='0000.0', max_length=16)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending-approval', 'Pending approval'), ('in-review', 'In review'), ('changes-requested', 'Changes requested'), ('approved', 'Approved'), ('sent-to-customer', 'Sent to customer'), ('rejected', 'Rejected'), ('expired', 'Expired')], default='draft', max_length=20)),
                ('quote_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('validity_days', models.PositiveIntegerField(default=30)),
                ('client_name', models.CharField(blank=True, default='', max_length=255)),
                ('contact_name', models.CharField(blank=True, default='', max_length=255)),
                ('contact_title', models.CharField(blank=True, default='', max_length=255)),
                ('contact_email', models.CharField(blank=True, default='', max_length=255)),
                ('contact_phone', models.CharField(blank=True, default='', max_length=64)),
                ('client_address', models.JSONField(default=quotes.models._default_address)),
                ('factory_roe', models.DecimalField(decimal_places=4, max_digits=12)),
                ('customer_roe', models.DecimalField(decimal_places=4, max_digits=12)),
                ('discount_pct', models.DecimalField(decimal_places=2, default=0, max_digits=6)),
                ('annual_interest_rate', models.DecimalField(decimal_places=3, max_digits=6)),
                ('default_lease_term_months', models.PositiveSmallIntegerField(default=60)),
                ('slots', models.JSONField(default=quotes.models._default_slots)),
                ('shipping_entries', models.JSONField(default=quotes.models._default_slots)),
                ('locked_at', models.DateTimeField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quotes_assigned', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quotes_created', to=settings.AUTH_USER_MODEL)),
                ('current_assignee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quotes_to_review', to=settings.AUTH_USER_MODEL)),
                ('locked_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quotes_locked', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-updated_at'],
                'indexes': [models.Index(fields=['status', '-updated_at'], name='quote_status_updated_idx'), models.Index(fields=['client_name'], name='quote_client_name_idx')],
            },
        ),
    ]
