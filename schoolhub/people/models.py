from django.conf import settings
from django.db import models
from django.db.models import Exists, OuterRef

from academics.models import ClassGroup

User = settings.AUTH_USER_MODEL

class StudentQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=Student.ACTIVE)

    def owing(self, fee):
        """Students of the fee's class without a fully-paid record for it."""
        from finance.models import FeePaid

        fully_paid = FeePaid.objects.filter(fee=fee, student=OuterRef("pk"), is_fully_paid=True)
        return self.filter(class_group_id=fee.class_group_id).filter(~Exists(fully_paid))

class Student(models.Model):
    ACTIVE = "active"
    STATUS_CHOICES = [
        (ACTIVE, "Active"),
        ("graduated", "Graduated"),
        ("left", "Left"),
    ]

    # login account; notifications are addressed to it
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="student")
    student_id = models.CharField(max_length=30, unique=True)
    first_name = models.CharField(max_length=60)
    last_name = models.CharField(max_length=60)
    date_of_birth = models.DateField()
    admission_date = models.DateField()
    class_group = models.ForeignKey(
        ClassGroup, on_delete=models.SET_NULL, null=True, blank=True, related_name="students"
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=ACTIVE)
    parent_users = models.ManyToManyField(User, blank=True, related_name="linked_students")

    objects = StudentQuerySet.as_manager()

    class Meta:
        ordering = ["class_group", "last_name", "first_name"]

    def guardian_ids(self) -> list[int]:
        return [g.pk for g in self.parent_users.all()]

    def __str__(self):
        return f"{self.last_name}, {self.first_name} ({self.student_id})"
