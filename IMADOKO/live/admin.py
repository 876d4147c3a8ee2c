from django.contrib import admin

from .models import LiveSession


@admin.register(LiveSession)
class LiveSessionAdmin(admin.ModelAdmin):
    list_display = ("token", "status", "host_lat", "host_lng", "guest_lat", "guest_lng", "updated_at")
    list_filter = ("status",)
    search_fields = ("token",)
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-updated_at",)
