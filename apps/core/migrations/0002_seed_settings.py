from django.db import migrations

from apps.core.defaults import seed_settings


def seed(apps, schema_editor):
    seed_settings(apps.get_model('core', 'CrmSetting'))


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed, migrations.RunPython.noop),
    ]
