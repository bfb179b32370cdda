import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CrmSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=100, unique=True, verbose_name='key')),
                ('value', models.JSONField(blank=True, null=True, verbose_name='value')),
                ('category', models.CharField(choices=[('general', 'General'), ('identity', 'Identity'), ('email', 'Email'), ('security', 'Security'), ('sales', 'Sales'), ('system', 'System'), ('branding', 'Branding'), ('upload', 'Upload')], db_index=True, default='general', max_length=50, verbose_name='category')),
                ('description', models.CharField(blank=True, max_length=255, verbose_name='description')),
                ('is_public', models.BooleanField(default=False, help_text='Exposed to every page (branding, identity...)', verbose_name='public')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
            ],
            options={
                'verbose_name': 'CRM setting',
                'verbose_name_plural': 'CRM settings',
                'ordering': ['category', 'key'],
            },
        ),
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('log_name', models.CharField(db_index=True, default='default', max_length=100, verbose_name='log name')),
                ('description', models.CharField(max_length=255, verbose_name='description')),
                ('subject_id', models.PositiveBigIntegerField(blank=True, null=True)),
                ('properties', models.JSONField(blank=True, default=dict, verbose_name='properties')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='created at')),
                ('causer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='activity_logs', to=settings.AUTH_USER_MODEL, verbose_name='causer')),
                ('subject_type', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='+', to='contenttypes.contenttype')),
            ],
            options={
                'verbose_name': 'activity log',
                'verbose_name_plural': 'activity logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['subject_type', 'subject_id'], name='activity_subject_idx'),
                    models.Index(fields=['causer', 'created_at'], name='activity_causer_idx'),
                ],
            },
        ),
    ]
