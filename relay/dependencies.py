from fastapi import Request

from relay.config import Settings
from relay.services.relay_service import RelayService


def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay_service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
