
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='CommissionTier',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('min_margin', models.DecimalField(decimal_places=2, help_text='Inclusive lower bound, % margin', max_digits=6)),
                ('max_margin', models.DecimalField(decimal_places=2, help_text='Exclusive upper bound, % margin', max_digits=6)),
                ('commission_rate', models.DecimalField(decimal_places=2, help_text='% of total sales', max_digits=5)),
            ],
            options={
                'db_table': 'commission_tiers',
                'ordering': ['min_margin'],
                'unique_together': {('min_margin', 'max_margin')},
            },
        ),
        migrations.CreateModel(
            name='ContainerMapping',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('series_code', models.CharField(max_length=32, unique=True)),
                ('category', models.TextField()),
                ('model', models.TextField(blank=True, default='')),
                ('qty_per_container', models.PositiveIntegerField()),
                ('container_type', models.CharField(default="40' standard", max_length=32)),
                ('container_cost_eur', models.DecimalField(decimal_places=2, max_digits=12)),
                ('notes', models.TextField(blank=True, default='')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'container_mappings',
                'ordering': ['series_code'],
            },
        ),
    ]
