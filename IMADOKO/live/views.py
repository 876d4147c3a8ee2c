import json, re
from django.http import JsonResponse, HttpResponseBadRequest, HttpResponseNotAllowed, HttpResponseNotFound
from django.views.decorators.csrf import csrf_exempt
from django.utils.cache import patch_cache_control
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .models import LiveSession
from .presence.exceptions import NotFound
from .serializers import LiveSessionSerializer, PositionSerializer, ShareIdSerializer

TOKEN_RE = re.compile(r"^[A-Z0-9]{8,64}$", re.I)

def _bad(msg="Bad request"):
    return HttpResponseBadRequest(msg)

def _nocache(resp):
    patch_cache_control(resp, no_cache=True, no_store=True, must_revalidate=True, max_age=0)
    return resp

def _json_body(request):
    # beacons often arrive as text/plain, so don't look at the content type
    try:
        data = json.loads(request.body or "{}")
    except (ValueError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


class LiveSessionSnapshotAPIView(APIView):
    """
    GET /api/public/live/<token>
    Estado completo de la sesión: coordenadas de host y guest y status.
    """
    authentication_classes = []
    permission_classes = []

    def get(self, request, token):
        if not TOKEN_RE.match(token or ""):
            return Response({"detail": "Invalid token"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            sess = LiveSession.objects.get(token=token)
        except LiveSession.DoesNotExist:
            return _nocache(Response({"detail": "Unknown token"}, status=status.HTTP_404_NOT_FOUND))
        return _nocache(Response(LiveSessionSerializer(sess).data))


def _position_view(write):
    @csrf_exempt
    def view(request, token: str):
        if request.method != "POST":
            return HttpResponseNotAllowed(["POST"])
        if not TOKEN_RE.match(token or ""):
            return _bad("Invalid token")

        data = _json_body(request)
        ser = PositionSerializer(data=data) if data is not None else None
        if ser is None or not ser.is_valid():
            return _bad("Invalid JSON: expected {lat,lng}")

        try:
            write(token, ser.validated_data["lat"], ser.validated_data["lng"])
        except NotFound:
            return HttpResponseNotFound("Unknown token")
        return _nocache(JsonResponse({"ok": True}))
    return view


host_position = _position_view(services.host_position)
guest_position = _position_view(services.guest_position)


def _signal_view(apply):
    @csrf_exempt
    def view(request):
        if request.method != "POST":
            return HttpResponseNotAllowed(["POST"])
        data = _json_body(request)
        ser = ShareIdSerializer(data=data) if data is not None else None
        if ser is None or not ser.is_valid():
            return JsonResponse({"error": "No shareId provided"}, status=400)
        try:
            apply(ser.validated_data["shareId"])
        except NotFound:
            return JsonResponse({"error": "Unknown shareId"}, status=404)
        return _nocache(JsonResponse({"success": True}))
    return view


stop_sharing = _signal_view(services.stop_sharing)
guest_leave = _signal_view(services.guest_leave)
