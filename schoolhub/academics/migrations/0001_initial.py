import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ClassGroup",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "school",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="class_groups",
                        to="core.school",
                    ),
                ),
                (
                    "academic_year",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="class_groups",
                        to="core.academicyear",
                    ),
                ),
                ("grade_level", models.CharField(max_length=20)),
                ("name", models.CharField(max_length=30)),
            ],
            options={
                "ordering": ("school", "grade_level", "name"),
                "unique_together": {("school", "name", "academic_year")},
            },
        ),
    ]
