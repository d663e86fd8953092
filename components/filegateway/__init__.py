from .settings import APP_NAME, GatewaySettings, get_settings

__all__ = ["APP_NAME", "GatewaySettings", "get_settings"]
