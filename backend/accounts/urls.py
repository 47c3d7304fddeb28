from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView
from .auth_views import EmailLoginView
from .views import UserViewSet

router = DefaultRouter(trailing_slash=False)
router.register("users", UserViewSet)

urlpatterns = [
    path("", include(router.urls)),
    path("auth/login", EmailLoginView.as_view(), name="auth-login"),
    path("auth/refresh", TokenRefreshView.as_view(), name="auth-refresh"),
]
