import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel

DEFAULT_LOCALE = "en_US"
FALLBACK_LOCALES = ["en_US", "zh_CN"]

CONFIG_SEARCH_PATHS = [
    "config.yaml",
    "~/.config/storefront/config.yaml",
    "/etc/storefront/config.yaml",
]


class StoreConfig(BaseModel):
    locale: str = DEFAULT_LOCALE
    metadata_server: str = "http://localhost:8000"
    operation_server: str = "http://localhost:8000"
    device_pixel_ratio: float = 1
    native: bool = False
    http_timeout_seconds: int = 15
    status_poll_interval_seconds: float = 1.0
    cors_origins: List[str] = []

    @property
    def fallback_chain(self) -> List[str]:
        return [self.locale, *FALLBACK_LOCALES]

    @property
    def media_base_url(self) -> str:
        return f"{self.metadata_server.rstrip('/')}/images/"

    @property
    def metadata_url(self) -> str:
        return f"{self.metadata_server.rstrip('/')}/api/v3/apps"

    @property
    def packages_url(self) -> str:
        return f"{self.metadata_server.rstrip('/')}/api/v3/packages"

    @property
    def operation_url(self) -> str:
        return f"{self.operation_server.rstrip('/')}/api/v3/apps"

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            locale=os.getenv("STOREFRONT_LOCALE", DEFAULT_LOCALE),
            metadata_server=os.getenv(
                "STOREFRONT_METADATA_SERVER", "http://localhost:8000"
            ),
            operation_server=os.getenv(
                "STOREFRONT_OPERATION_SERVER", "http://localhost:8000"
            ),
            device_pixel_ratio=float(os.getenv("STOREFRONT_DEVICE_PIXEL_RATIO", "1")),
            native=os.getenv("STOREFRONT_NATIVE", "false").lower() == "true",
            http_timeout_seconds=int(os.getenv("STOREFRONT_HTTP_TIMEOUT_SECONDS", "15")),
            status_poll_interval_seconds=float(
                os.getenv("STOREFRONT_STATUS_POLL_INTERVAL_SECONDS", "1")
            ),
            cors_origins=[
                origin.strip()
                for origin in os.getenv("STOREFRONT_CORS_ORIGINS", "").split(",")
                if origin.strip()
            ],
        )


def find_config_file(path: Optional[str] = None) -> Optional[str]:
    if path:
        return path
    for candidate in CONFIG_SEARCH_PATHS:
        expanded = os.path.expanduser(candidate)
        if os.path.exists(expanded):
            return expanded
    return None


def load_config(path: Optional[str] = None) -> StoreConfig:
    """Build the store configuration.

    Environment variables provide the defaults; the ``store`` section of a
    YAML config file, when one is found, overrides them.
    """
    base = StoreConfig.from_env()
    config_path = find_config_file(path)
    if not config_path:
        return base

    with open(config_path, "r") as f:
        full_config = yaml.safe_load(f) or {}

    section: Dict[str, Any] = full_config.get("store") or {}
    if not isinstance(section, dict):
        raise ValueError(f"'store' section in {config_path} must be a mapping")
    return StoreConfig.model_validate({**base.model_dump(), **section})


config = StoreConfig.from_env()
