from django.db import models
from django.utils import timezone

from academics.models import ClassGroup
from core.models import AcademicYear
from people.models import Student

class Fee(models.Model):
    name = models.CharField(max_length=120)
    class_group = models.ForeignKey(ClassGroup, on_delete=models.CASCADE, related_name="fees")
    academic_year = models.ForeignKey(AcademicYear, on_delete=models.PROTECT, null=True, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField()

    class Meta:
        ordering = ["due_date", "id"]

    def __str__(self):
        return f"{self.name} ({self.class_group})"

class FeePaid(models.Model):
    fee = models.ForeignKey(Fee, on_delete=models.CASCADE, related_name="payments")
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="fees_paid")
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    is_fully_paid = models.BooleanField(default=False)
    paid_on = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("fee", "student")

    def __str__(self):
        return f"{self.student} / {self.fee} ({'paid' if self.is_fully_paid else 'partial'})"
