from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

STATUS_CHOICES = (
    ("active", "Active"),
    ("stopped", "Stopped"),
)


def _lat(**kw):
    return models.FloatField(
        null=True, blank=True,
        validators=[MinValueValidator(-90.0), MaxValueValidator(90.0)], **kw)


def _lng(**kw):
    return models.FloatField(
        null=True, blank=True,
        validators=[MinValueValidator(-180.0), MaxValueValidator(180.0)], **kw)


class LiveSession(models.Model):
    token = models.CharField(max_length=64, unique=True, db_index=True)
    # host fields: written by the host only
    host_lat = _lat()
    host_lng = _lng()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="active")
    # guest fields: null means the guest is not sharing right now
    guest_lat = _lat()
    guest_lng = _lng()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        verbose_name = "Live session"
        verbose_name_plural = "Live sessions"

    def as_dict(self):
        t = int(self.updated_at.timestamp() * 1000) if self.updated_at else None
        return {
            "host_lat": self.host_lat,
            "host_lng": self.host_lng,
            "guest_lat": self.guest_lat,
            "guest_lng": self.guest_lng,
            "status": self.status,
            "t": t,
        }

    @property
    def active(self):
        return self.status == "active"

    def __str__(self):
        return f"{self.token} ({'on' if self.active else 'off'})"
