import uuid
from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Flight",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("flight_number", models.CharField(max_length=16)),
                ("airline_code", models.CharField(blank=True, max_length=3)),
                ("origin", models.CharField(help_text="IATA code of the departure airport.", max_length=3)),
                ("destination", models.CharField(help_text="IATA code of the arrival airport.", max_length=3)),
                ("departure_at", models.DateTimeField()),
                ("arrival_at", models.DateTimeField()),
                ("price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("currency", models.CharField(default="BRL", max_length=3)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Flight",
                "verbose_name_plural": "Flights",
                "ordering": ["departure_at"],
                "indexes": [
                    models.Index(fields=["origin", "destination", "departure_at"], name="flight_route_departure_idx"),
                ],
            },
        ),
    ]
