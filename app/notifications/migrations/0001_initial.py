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
            name="Notification",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "entity_type",
                    models.CharField(
                        choices=[("INVOICE", "Invoice")],
                        default="INVOICE",
                        max_length=30,
                    ),
                ),
                ("entity_id", models.IntegerField()),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("MANAGER_APPROVED", "Manager Approved"),
                            ("READY_FOR_PAYMENT", "Ready for Payment"),
                            ("MANAGER_REJECTED", "Manager Rejected"),
                            ("INVOICE_PAID", "Invoice Paid"),
                            ("RESUBMITTED", "Resubmitted"),
                            ("SLA_REMINDER", "SLA Reminder"),
                            ("CUSTOM", "Custom"),
                        ],
                        max_length=50,
                    ),
                ),
                (
                    "sla_stage",
                    models.CharField(
                        blank=True,
                        choices=[("PENDING_MANAGER", "Pending Manager")],
                        max_length=30,
                        null=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("SYSTEM", "System (in-app)"),
                            ("EMAIL", "Email"),
                            ("WEBHOOK", "Webhook"),
                        ],
                        default="SYSTEM",
                        max_length=30,
                    ),
                ),
                ("payload", models.JSONField(blank=True, null=True)),
                ("requires_action", models.BooleanField(default=False)),
                (
                    "action_url",
                    models.CharField(blank=True, max_length=500, null=True),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "Queued"),
                            ("sent", "Sent"),
                            ("failed", "Failed"),
                            ("canceled", "Canceled"),
                        ],
                        default="queued",
                        max_length=20,
                    ),
                ),
                ("attempts", models.IntegerField(default=0)),
                ("last_error", models.TextField(blank=True, null=True)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("active", models.BooleanField(default=True)),
                (
                    "triggered_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="triggered_notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(
                            ("active", True), ("event_type", "SLA_REMINDER")
                        ),
                        fields=(
                            "entity_type",
                            "entity_id",
                            "event_type",
                            "sla_stage",
                        ),
                        name="ux_notifications_active_sla",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="UserNotification",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                (
                    "notification",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="deliveries",
                        to="notifications.notification",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="in_app_notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "unique_together": {("notification", "user")},
            },
        ),
    ]
