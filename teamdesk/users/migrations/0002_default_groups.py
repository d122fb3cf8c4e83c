from django.db import migrations

TEAM_GROUPS = ("Admin", "Manager", "Member")


def create_team_groups(apps, schema_editor):
    Group = apps.get_model("auth", "Group")
    for name in TEAM_GROUPS:
        Group.objects.get_or_create(name=name)


def remove_team_groups(apps, schema_editor):
    Group = apps.get_model("auth", "Group")
    Group.objects.filter(name__in=TEAM_GROUPS).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("users", "0001_initial"),
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.RunPython(create_team_groups, remove_team_groups),
    ]
