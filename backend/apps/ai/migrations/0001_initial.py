# Initial migration for AI app
import uuid
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        # SavedGenome
        migrations.CreateModel(
            name='SavedGenome',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('genome_id', models.CharField(blank=True, max_length=64)),
                ('architecture_tag', models.CharField(max_length=64)),
                ('network', models.JSONField()),
                ('generation', models.PositiveIntegerField(default=0)),
                ('fitness', models.FloatField(default=0.0)),
                ('matches_won', models.PositiveIntegerField(default=0)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('is_champion', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'saved_genomes',
                'ordering': ['-created_at'],
            },
        ),
        # TrainingRun
        migrations.CreateModel(
            name='TrainingRun',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(
                    choices=[
                        ('running', 'Running'),
                        ('completed', 'Completed'),
                        ('failed', 'Failed'),
                    ],
                    default='running',
                    max_length=20,
                )),
                ('population_size', models.PositiveIntegerField(default=48)),
                ('mutation_rate_base', models.FloatField(default=0.3)),
                ('architecture_tag', models.CharField(max_length=64)),
                ('generations_requested', models.PositiveIntegerField(default=0)),
                ('generations_completed', models.PositiveIntegerField(default=0)),
                ('best_fitness', models.FloatField(blank=True, null=True)),
                ('history', models.JSONField(default=list)),
                ('error', models.TextField(blank=True)),
                ('started_at', models.DateTimeField(auto_now_add=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('champion', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='training_runs',
                    to='ai.savedgenome',
                )),
            ],
            options={
                'db_table': 'training_runs',
                'ordering': ['-started_at'],
            },
        ),
    ]
