# Manually created to populate the application roles.
# Workflow permissions resolve users by these role names.

from django.db import migrations

ROLES = {
    "admin": "Full access; may force any legal workflow transition.",
    "manager": "Department approver for assigned invoices.",
    "finance": "Marks invoices paid and archives them.",
    "operations": "Operations staff; acts in The Operations Room stage.",
    "submitter": "Submits invoices and resubmits rejected ones.",
    "viewer": "Read-only access.",
}


def create_default_roles(apps, schema_editor):
    Role = apps.get_model("references", "Role")
    for name, description in ROLES.items():
        Role.objects.get_or_create(
            name=name, defaults={"description": description}
        )


def reverse_default_roles(apps, schema_editor):
    Role = apps.get_model("references", "Role")
    Role.objects.filter(name__in=list(ROLES)).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("references", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_default_roles, reverse_default_roles),
    ]
