# Generated migration for user preferences and fitness assessments

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='FitnessAssessment',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('assessment_type', models.CharField(db_index=True, help_text="Assessment type (e.g., 'initial_onboarding', 'weekly')", max_length=100)),
                ('assessment_data', models.JSONField(default=dict, help_text='Assessment answers and measurements')),
                ('score', models.DecimalField(blank=True, decimal_places=2, help_text='Score between 0 and 999.99', max_digits=5, null=True)),
                ('assessment_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_by', models.ForeignKey(blank=True, help_text='User who recorded the assessment', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assessments_created', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(help_text='Assessed user', on_delete=django.db.models.deletion.CASCADE, related_name='fitness_assessments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'fitness_assessments',
                'ordering': ['-assessment_date', '-id'],
                'indexes': [
                    models.Index(fields=['user', 'assessment_type', 'assessment_date'], name='assessment_user_type_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='UserPreference',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('name', models.CharField(help_text='Preference key', max_length=100)),
                ('value', models.TextField(blank=True, default='', help_text='Encoded preference value')),
                ('value_type', models.CharField(choices=[('string', 'String'), ('integer', 'Integer'), ('boolean', 'Boolean'), ('json', 'JSON')], default='string', max_length=10)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='preferences', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'user_preferences',
                'ordering': ['name'],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'name'), name='unique_user_preference'),
                ],
            },
        ),
    ]
