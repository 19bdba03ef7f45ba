from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.notifications"
    verbose_name = "Notifications"

    def ready(self):
        from apps.bookings.domain.events import BookingPaid
        from shared.application.message_bus import message_bus

        from .handlers import send_confirmation_on_payment

        message_bus.register_event_handler(BookingPaid, send_confirmation_on_payment)
