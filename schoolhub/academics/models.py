from django.db import models
from core.models import AcademicYear, School

class ClassGroupQuerySet(models.QuerySet):
    def for_school(self, school_id):
        # no school means a global admin: every class
        if school_id:
            return self.filter(school_id=school_id)
        return self

class ClassGroup(models.Model):
    """A class section of one school in one academic year, e.g. "Form 2A"."""

    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name="class_groups")
    academic_year = models.ForeignKey(AcademicYear, on_delete=models.PROTECT, related_name="class_groups")
    grade_level = models.CharField(max_length=20)
    name = models.CharField(max_length=30)

    objects = ClassGroupQuerySet.as_manager()

    class Meta:
        unique_together = ("school", "name", "academic_year")
        ordering = ("school", "grade_level", "name")

    def __str__(self) -> str:
        return f"{self.school.code} {self.name} / {self.academic_year}"
