from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class RealtimeConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "chat_backend.realtime"
    verbose_name = _("Realtime")

    gateway = None

    def ready(self):
        from chat_backend.realtime.gateway import RealtimeGateway  # noqa: PLC0415
        from chat_backend.realtime.socketio import sio  # noqa: PLC0415
        from chat_backend.realtime.store import MessageStore  # noqa: PLC0415

        # One gateway per process, bound to the shared Socket.IO server.
        self.gateway = RealtimeGateway(sio, store=MessageStore())
        self.gateway.register()
