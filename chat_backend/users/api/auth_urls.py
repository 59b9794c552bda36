from django.urls import path
from rest_framework_simplejwt.views import TokenVerifyView

from .auth_views import LoginView
from .auth_views import LogoutView
from .auth_views import RefreshView
from .auth_views import SignupView

urlpatterns = [
    path("signup/", SignupView.as_view(), name="signup"),
    path("login/", LoginView.as_view(), name="login"),
    path("refresh/", RefreshView.as_view(), name="refresh"),
    path("verify/", TokenVerifyView.as_view(), name="verify"),
    path("logout/", LogoutView.as_view(), name="logout"),
]
