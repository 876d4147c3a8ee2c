from django.urls import path
from . import views

urlpatterns = [
    path("api/public/live/<str:token>", views.LiveSessionSnapshotAPIView.as_view(), name="live_snapshot"),  # GET estado
    path("api/public/live/<str:token>/host", views.host_position, name="live_host"),     # POST {lat,lng}
    path("api/public/live/<str:token>/guest", views.guest_position, name="live_guest"),  # POST {lat,lng}
    path("api/stop-sharing", views.stop_sharing, name="live_stop_sharing"),              # beacon host
    path("api/guest-leave", views.guest_leave, name="live_guest_leave"),                 # beacon guest
]
