import django.core.validators
import django.db.models.deletion
import renovation_requests.models
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='RenovationRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('customer_id', models.CharField(max_length=128)),
                ('category', models.CharField(choices=[('KITCHEN', 'Kitchen'), ('BATHROOM', 'Bathroom'), ('BASEMENT', 'Basement'), ('FLOORING', 'Flooring'), ('PAINTING', 'Painting'), ('OTHER', 'Other')], max_length=16)),
                ('property_type', models.CharField(choices=[('DETACHED_HOUSE', 'Detached House'), ('TOWNHOUSE', 'Townhouse'), ('CONDO', 'Condo'), ('COMMERCIAL', 'Commercial Real Estate')], default='DETACHED_HOUSE', max_length=16)),
                ('budget_range', models.CharField(choices=[('UNDER_50K', 'Under $50K'), ('RANGE_50_100K', '$50K - $100K'), ('OVER_100K', 'Over $100K')], max_length=16)),
                ('timeline', models.CharField(choices=[('ASAP', 'As soon as possible'), ('WITHIN_1MONTH', 'Within 1 month'), ('WITHIN_3MONTHS', 'Within 3 months'), ('PLANNING', 'Planning stage')], max_length=16)),
                ('postal_code', models.CharField(max_length=7, validators=[django.core.validators.RegexValidator(message='Invalid Canadian postal code', regex='^[A-Za-z]\\d[A-Za-z][ -]?\\d[A-Za-z]\\d$')])),
                ('address', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('photos', models.JSONField(blank=True, default=list, validators=[renovation_requests.models.validate_photos])),
                ('status', models.CharField(choices=[('OPEN', 'Open'), ('INSPECTION_PENDING', 'Inspection Pending'), ('INSPECTION_SCHEDULED', 'Inspection Scheduled'), ('BIDDING_OPEN', 'Bidding Open'), ('BIDDING_CLOSED', 'Bidding Closed'), ('CONTRACTOR_SELECTED', 'Contractor Selected'), ('COMPLETED', 'Completed'), ('CLOSED', 'Closed')], default='OPEN', max_length=24)),
                ('inspection_date', models.DateTimeField(blank=True, null=True)),
                ('inspection_notes', models.TextField(blank=True)),
                ('bidding_start_date', models.DateTimeField(blank=True, null=True)),
                ('bidding_end_date', models.DateTimeField(blank=True, null=True)),
                ('selected_contractor_id', models.CharField(blank=True, max_length=128, null=True)),
                ('closed_reason', models.TextField(blank=True)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='InspectionInterest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('contractor_id', models.CharField(max_length=128)),
                ('will_participate', models.BooleanField(default=False)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='inspection_interests', to='renovation_requests.renovationrequest')),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('request', 'contractor_id'), name='unique_interest_per_contractor')],
            },
        ),
        migrations.CreateModel(
            name='Bid',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('contractor_id', models.CharField(max_length=128)),
                ('contractor_name', models.CharField(blank=True, max_length=128)),
                ('labor_cost', models.DecimalField(decimal_places=2, max_digits=12)),
                ('material_cost', models.DecimalField(decimal_places=2, max_digits=12)),
                ('permit_cost', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('disposal_cost', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('timeline_weeks', models.PositiveSmallIntegerField()),
                ('start_date', models.DateField()),
                ('included_items', models.TextField()),
                ('excluded_items', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('estimate_file', models.CharField(blank=True, max_length=255)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('ACCEPTED', 'Accepted'), ('REJECTED', 'Rejected')], default='PENDING', max_length=16)),
                ('withdrawn_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bids', to='renovation_requests.renovationrequest')),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('request', 'contractor_id'), name='unique_bid_per_contractor')],
            },
        ),
    ]
