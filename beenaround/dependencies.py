from fastapi import Request

from .services.email_service import EmailService
from .services.instagram_service import InstagramClient
from .services.notification_service import PushNotifier
from .services.storage import StorageService


# External clients are built once in the app lifespan and kept on app.state.

def get_storage(request: Request) -> StorageService:
    return request.app.state.storage


def get_notifier(request: Request) -> PushNotifier:
    return request.app.state.notifier


def get_mailer(request: Request) -> EmailService:
    return request.app.state.mailer


def get_instagram(request: Request) -> InstagramClient:
    return request.app.state.instagram
