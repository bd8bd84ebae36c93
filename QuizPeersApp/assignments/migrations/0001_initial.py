import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Consumer",
            fields=[
                ("id", models.CharField(max_length=255, primary_key=True, serialize=False)),
                ("key", models.CharField(max_length=255)),
                ("secret", models.CharField(max_length=255)),
                ("status", models.CharField(choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive")], default="ACTIVE", max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="Assignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("course_id", models.CharField(max_length=255)),
                ("title", models.CharField(max_length=60)),
                ("kind", models.CharField(choices=[("TASK_SUBMISSION", "Task submission"), ("QUIZ_DEFINITE", "Quiz (fixed tasks)"), ("QUIZ_RANDOM", "Quiz (random tasks)")], max_length=30)),
                ("size", models.JSONField()),
                ("task_types", models.JSONField(blank=True, default=list)),
                ("glossary", models.JSONField(blank=True, null=True)),
                ("points", models.FloatField(blank=True, null=True)),
                ("timer", models.JSONField(blank=True, null=True)),
                ("weights", models.JSONField(blank=True, null=True)),
                ("status", models.CharField(choices=[("CREATED", "Created"), ("STARTED", "Started"), ("FINISHED", "Finished"), ("PUBLISHED_NO_SOLUTION", "Published without solution"), ("PUBLISHED_WITH_SOLUTION", "Published with solution")], default="CREATED", max_length=30)),
                ("outcome_url", models.CharField(blank=True, max_length=255, null=True)),
                ("deadline", models.DateTimeField()),
                ("created_by", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("consumer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="assignments", to="assignments.consumer")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["consumer", "course_id"], name="ix_assignment_context"),
                    models.Index(fields=["status", "deadline"], name="ix_assignment_expiry"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TaskGroup",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=60)),
                ("description", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("assignment", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="task_groups", to="assignments.assignment")),
            ],
        ),
        migrations.CreateModel(
            name="HistoricalAssignment",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("course_id", models.CharField(max_length=255)),
                ("title", models.CharField(max_length=60)),
                ("kind", models.CharField(choices=[("TASK_SUBMISSION", "Task submission"), ("QUIZ_DEFINITE", "Quiz (fixed tasks)"), ("QUIZ_RANDOM", "Quiz (random tasks)")], max_length=30)),
                ("size", models.JSONField()),
                ("task_types", models.JSONField(blank=True, default=list)),
                ("glossary", models.JSONField(blank=True, null=True)),
                ("points", models.FloatField(blank=True, null=True)),
                ("timer", models.JSONField(blank=True, null=True)),
                ("weights", models.JSONField(blank=True, null=True)),
                ("status", models.CharField(choices=[("CREATED", "Created"), ("STARTED", "Started"), ("FINISHED", "Finished"), ("PUBLISHED_NO_SOLUTION", "Published without solution"), ("PUBLISHED_WITH_SOLUTION", "Published with solution")], default="CREATED", max_length=30)),
                ("outcome_url", models.CharField(blank=True, max_length=255, null=True)),
                ("deadline", models.DateTimeField()),
                ("created_by", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(blank=True, editable=False)),
                ("updated_at", models.DateTimeField(blank=True, editable=False)),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")], max_length=1)),
                ("consumer", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="+", to="assignments.consumer")),
                ("history_user", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "historical assignment",
                "verbose_name_plural": "historical assignments",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
