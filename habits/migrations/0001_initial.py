import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timezone", models.CharField(blank=True, default="", max_length=64)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Habit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                (
                    "origin",
                    models.CharField(
                        choices=[("preset", "Preset"), ("custom", "Custom")],
                        default="custom",
                        max_length=10,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("health", "Health"),
                            ("education", "Education"),
                            ("productivity", "Productivity"),
                            ("social", "Social"),
                            ("wellness", "Wellness"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=20,
                    ),
                ),
                ("icon", models.CharField(blank=True, max_length=32)),
                ("unit", models.CharField(max_length=40)),
                ("target_amount", models.FloatField()),
                ("increment_amount", models.FloatField(default=1)),
                ("available_units", models.JSONField(blank=True, default=list)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="habits",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["owner", "is_active"], name="habit_owner_active_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True)),
                        fields=("owner", "name"),
                        name="unique_active_habit_name_per_user",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("target_amount__gt", 0)),
                        name="habit_target_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("increment_amount__gt", 0)),
                        name="habit_increment_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="HabitLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateTimeField()),
                ("value", models.FloatField(default=0)),
                ("completed", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "habit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="logs",
                        to="habits.habit",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="habit_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-date", "-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "date"], name="habitlog_owner_date_idx"),
                    models.Index(fields=["owner", "date", "completed"], name="habitlog_owner_done_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("habit", "date"), name="unique_log_per_habit_per_day"),
                    models.CheckConstraint(
                        condition=models.Q(("value__gte", 0)),
                        name="habit_log_value_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Goal",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("complete", "Complete a habit N times"),
                            ("reach", "Reach a streak or rate"),
                            ("maintain", "Maintain completion"),
                        ],
                        max_length=10,
                    ),
                ),
                ("repeat", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "metric",
                    models.CharField(
                        blank=True,
                        choices=[("streak", "Streak"), ("rate", "Completion rate")],
                        default="",
                        max_length=10,
                    ),
                ),
                ("value", models.FloatField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "habit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="goals",
                        to="habits.habit",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="goals",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["owner", "type"], name="goal_owner_type_idx")],
            },
        ),
    ]
