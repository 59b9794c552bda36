from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend


class UsernameOrEmailBackend(ModelBackend):
    """Accept either the username or the email address as the login."""

    def authenticate(self, request, username=None, password=None, **kwargs):
        login = (username or "").strip()
        if not login or password is None:
            return None

        manager = get_user_model()._default_manager
        user = (
            manager.filter(email__iexact=login).first()
            or manager.filter(username__iexact=login).first()
        )
        if user is None:
            # Run the hasher anyway so unknown logins cost the same time.
            get_user_model()().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
