from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="rental",
            constraint=models.CheckConstraint(
                condition=models.Q(end_at__gt=models.F("start_at")),
                name="rental_end_after_start",
                violation_error_message="End must be after start.",
            ),
        ),
    ]
