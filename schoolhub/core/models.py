from django.core.cache import cache
from django.db import models

from .constants import CACHE_DEFAULT_SESSION_YEAR


class School(models.Model):
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=30, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class AcademicYear(models.Model):
    name = models.CharField(max_length=20, unique=True)  # "2025"
    start_date = models.DateField()
    end_date = models.DateField()
    is_current = models.BooleanField(default=False)

    class Meta:
        ordering = ["-start_date"]

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        cache.delete(CACHE_DEFAULT_SESSION_YEAR)

    def delete(self, *args, **kwargs):
        result = super().delete(*args, **kwargs)
        cache.delete(CACHE_DEFAULT_SESSION_YEAR)
        return result

    def __str__(self) -> str:
        return self.name


class SystemSetting(models.Model):
    TYPE_CHOICES = [
        ("string", "String"),
        ("integer", "Integer"),
        ("boolean", "Boolean"),
        ("file", "File"),
    ]
    name = models.CharField(max_length=120, unique=True)  # e.g. "super_admin_name"
    data = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="string")

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name
