from .notification_service import EmailNotificationService

__all__ = ["EmailNotificationService"]
