import django.core.validators
import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models

SUBMISSION_STATUS = [
    ("STARTED", "Started"),
    ("PENDING", "Pending evaluation"),
    ("EVALUATED", "Evaluated"),
    ("EVALUATED_PUBLISHED", "Evaluated and published"),
]
TASK_STATUS = [
    ("PENDING", "Pending"),
    ("EVALUATED", "Evaluated"),
    ("EVALUATED_INCLUDE", "Evaluated, included in quiz pools"),
]
TASK_TYPE = [
    ("MULTIPLE_CHOICE", "Multiple choice"),
    ("COMBINE_TERMS", "Combine terms"),
    ("NAME_IMAGE", "Name image"),
]
HISTORY_TYPE = [("+", "Created"), ("~", "Changed"), ("-", "Deleted")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("assignments", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Submission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=255)),
                ("status", models.CharField(choices=SUBMISSION_STATUS, default="STARTED", max_length=30)),
                ("tasks", models.JSONField(blank=True, null=True)),
                ("score", models.FloatField(blank=True, null=True)),
                ("lms_score", models.FloatField(blank=True, null=True)),
                ("return_id", models.CharField(blank=True, max_length=255, null=True)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("published_by", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("assignment", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="submissions", to="assignments.assignment")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("assignment", "user_id"), name="uq_assignment_user"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Task",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=TASK_TYPE, max_length=30)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("media_id", models.CharField(blank=True, max_length=255, null=True)),
                ("options", models.JSONField(default=list)),
                ("solution", models.JSONField(null=True)),
                ("edit", models.JSONField(blank=True, null=True)),
                ("status", models.CharField(choices=TASK_STATUS, default="PENDING", max_length=30)),
                ("score", models.FloatField(blank=True, null=True)),
                ("evaluated_at", models.DateTimeField(blank=True, null=True)),
                ("evaluated_by", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("submission", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="submitted_tasks", to="learning.submission")),
            ],
        ),
        migrations.CreateModel(
            name="AssignmentTaskLink",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("difficulty", models.PositiveSmallIntegerField(choices=[(1, "Low"), (2, "Medium"), (3, "High")], default=1, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(3)])),
                ("fraction", models.FloatField()),
                ("assignment", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="task_links", to="assignments.assignment")),
                ("task", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="assignment_links", to="learning.task")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("assignment", "task"), name="uq_assignment_task"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TaskGroupLink",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("task", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="group_link", to="learning.task")),
                ("task_group", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="task_links", to="assignments.taskgroup")),
            ],
        ),
        migrations.CreateModel(
            name="HistoricalSubmission",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("user_id", models.CharField(max_length=255)),
                ("status", models.CharField(choices=SUBMISSION_STATUS, default="STARTED", max_length=30)),
                ("tasks", models.JSONField(blank=True, null=True)),
                ("score", models.FloatField(blank=True, null=True)),
                ("lms_score", models.FloatField(blank=True, null=True)),
                ("return_id", models.CharField(blank=True, max_length=255, null=True)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("published_by", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(blank=True, editable=False)),
                ("updated_at", models.DateTimeField(blank=True, editable=False)),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=HISTORY_TYPE, max_length=1)),
                ("assignment", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="+", to="assignments.assignment")),
                ("history_user", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "historical submission",
                "verbose_name_plural": "historical submissions",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalTask",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("type", models.CharField(choices=TASK_TYPE, max_length=30)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("media_id", models.CharField(blank=True, max_length=255, null=True)),
                ("options", models.JSONField(default=list)),
                ("solution", models.JSONField(null=True)),
                ("edit", models.JSONField(blank=True, null=True)),
                ("status", models.CharField(choices=TASK_STATUS, default="PENDING", max_length=30)),
                ("score", models.FloatField(blank=True, null=True)),
                ("evaluated_at", models.DateTimeField(blank=True, null=True)),
                ("evaluated_by", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(blank=True, editable=False)),
                ("updated_at", models.DateTimeField(blank=True, editable=False)),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=HISTORY_TYPE, max_length=1)),
                ("submission", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="+", to="learning.submission")),
                ("history_user", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "historical task",
                "verbose_name_plural": "historical tasks",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
