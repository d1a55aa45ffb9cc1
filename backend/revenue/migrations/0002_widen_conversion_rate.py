# Generated manually to widen conversion_rate
# Daily orders can outnumber active carts many times over, so the rate needs more digits

from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("revenue", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="revenuestatistics",
            name="conversion_rate",
            field=models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
        ),
    ]
