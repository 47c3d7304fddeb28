import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import update_last_login
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from reminders.tasks import trigger_reminders
from .serializers import UserSerializer

User = get_user_model()
logger = logging.getLogger(__name__)


def _trigger_daily_reminders(user):
    """
    El primer ingreso de administración del día dispara la corrida de recordatorios.
    Nunca bloquea ni rompe el login: el resultado queda en la bitácora.
    """
    if not getattr(settings, "REMINDERS_TRIGGER_ON_LOGIN", True):
        return False
    try:
        return trigger_reminders(trigger="login")
    except Exception:
        logger.exception("reminder_trigger_on_login_failed", extra={"user_id": user.id})
        return False


class EmailLoginView(APIView):
    """
    Login por email. Devuelve access/refresh + datos de usuario.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = "login"

    def post(self, request):
        email = (request.data.get("email") or "").strip().lower()
        password = request.data.get("password") or ""
        if not email or not password:
            return Response({"detail": "Email y contraseña requeridos."}, status=status.HTTP_400_BAD_REQUEST)

        user = User.objects.filter(email__iexact=email).first()
        if not user or not user.check_password(password):
            return Response({"detail": "Credenciales inválidas."}, status=status.HTTP_401_UNAUTHORIZED)
        if not user.is_active:
            return Response({"detail": "La cuenta está inactiva. Contactá a la escuela."}, status=status.HTTP_403_FORBIDDEN)

        update_last_login(None, user)
        if user.is_school_admin:
            triggered = _trigger_daily_reminders(user)
            logger.info("admin_login", extra={"user_id": user.id, "reminders_triggered": triggered})

        refresh = RefreshToken.for_user(user)
        data = {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
            "user": UserSerializer(user).data,
        }
        return Response(data)
