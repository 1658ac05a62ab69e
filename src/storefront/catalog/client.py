import asyncio
import json
import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.error import URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from pydantic import ValidationError

from storefront.catalog.errors import CatalogPayloadError, CatalogTransportError
from storefront.catalog.models import Stat
from storefront.config.settings import StoreConfig

logger = logging.getLogger(__name__)

METADATA_PRELOADS = ["info", "desc", "tags", "images"]


class CatalogClient:
    def __init__(self, config: StoreConfig):
        self.config = config
        self.timeout_seconds = config.http_timeout_seconds

    async def fetch_stats(self, params: Mapping[str, Any]) -> List[Stat]:
        data = await asyncio.to_thread(self.get_json, self.config.operation_url, params)
        if not isinstance(data, list):
            raise CatalogPayloadError("Stat payload must be a JSON array")
        try:
            return [Stat.model_validate(item) for item in data]
        except ValidationError as exc:
            raise CatalogPayloadError(f"Stat payload has invalid records: {exc}") from exc

    async def fetch_software(self, names: List[str]) -> List[Dict[str, Any]]:
        params = {"names": sorted(names), "preloads": METADATA_PRELOADS}
        data = await asyncio.to_thread(self.get_json, self.config.metadata_url, params)
        if not isinstance(data, list):
            raise CatalogPayloadError("Metadata payload must be a JSON array")
        for index, record in enumerate(data):
            if not isinstance(record, dict):
                raise CatalogPayloadError(
                    f"Metadata record at index {index} must be an object"
                )
        return data

    async def fetch_package_urls(self) -> Dict[str, Any]:
        data = await asyncio.to_thread(self.get_json, self.config.packages_url)
        if not isinstance(data, dict):
            raise CatalogPayloadError("Package URL payload must be a JSON object")
        return data

    def get_json(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        if params:
            url = f"{url}?{urlencode(params, doseq=True)}"
        logger.debug("GET %s", url)
        request = Request(url, headers={"Accept": "application/json"})
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                body = response.read()
        except (URLError, OSError) as exc:
            raise CatalogTransportError(f"Request to {url} failed: {exc}") from exc

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CatalogPayloadError(f"Response from {url} is not valid JSON") from exc
