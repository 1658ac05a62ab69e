import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from storefront.catalog.errors import CatalogPayloadError
from storefront.catalog.images import ImageSelector
from storefront.catalog.locale import LocaleResolver
from storefront.catalog.models import (
    Description,
    ImageRecord,
    PackageURI,
    SoftwareEntry,
    SoftwareInfo,
    Tag,
)
from storefront.config.settings import StoreConfig

logger = logging.getLogger(__name__)


class MetadataNormalizer:
    """Turn raw metadata server records into ``SoftwareEntry`` objects."""

    def __init__(self, resolver: LocaleResolver, images: ImageSelector):
        self.resolver = resolver
        self.images = images

    @classmethod
    def from_config(cls, config: StoreConfig) -> "MetadataNormalizer":
        resolver = LocaleResolver.from_config(config)
        return cls(resolver, ImageSelector.from_config(config, resolver))

    def normalize(self, record: Dict[str, Any]) -> SoftwareEntry:
        if not isinstance(record, dict):
            raise CatalogPayloadError("Software record must be an object")
        name = record.get("name")
        if not isinstance(name, str) or not name:
            raise CatalogPayloadError("Software record must include 'name'")

        raw_info = record.get("info") or {}
        if not isinstance(raw_info, dict):
            raise CatalogPayloadError(f"Software '{name}' field 'info' must be an object")

        descriptions = self._parse_records(name, "desc", record.get("desc"), Description)
        tags = self._parse_records(name, "tags", record.get("tags"), Tag)
        images = self._parse_records(name, "images", record.get("images"), ImageRecord)

        payload = {
            key: value
            for key, value in raw_info.items()
            if key in SoftwareInfo.model_fields or key == "homePage"
        }
        payload["packages"] = [
            PackageURI(package_uri=url)
            for url in self._parse_package_uris(name, raw_info.get("packageURI"))
        ]
        payload["extra"] = self._parse_extra(name, raw_info.get("extra"))

        description = self._select_description(descriptions)
        if description:
            payload.update(description.model_dump())

        payload["tags"] = [tag.tag for tag in self.resolver.filter_preferred(tags)]
        icon = raw_info.get("icon")
        payload["icon"] = self.images.url(icon) if icon else None
        payload["cover"] = self.images.select_cover(images)
        payload["screenshot"] = self.images.select_screenshots(images)

        try:
            info = SoftwareInfo.model_validate(payload)
        except ValidationError as exc:
            raise CatalogPayloadError(f"Software '{name}' has invalid info: {exc}") from exc
        return SoftwareEntry(name=name, info=info)

    def _select_description(
        self, descriptions: List[Description]
    ) -> Optional[Description]:
        named = [desc for desc in descriptions if desc.name]
        preferred = self.resolver.filter_preferred(named)
        if preferred:
            return preferred[0]
        # Nothing named in the target locale or en_US; take whatever ranks best.
        return self.resolver.best(named)

    def _parse_records(self, name: str, field: str, value: Any, model):
        if value is None:
            return []
        if not isinstance(value, list):
            raise CatalogPayloadError(f"Software '{name}' field '{field}' must be an array")
        try:
            return [model.model_validate(item) for item in value]
        except ValidationError as exc:
            raise CatalogPayloadError(
                f"Software '{name}' has invalid '{field}' records: {exc}"
            ) from exc

    def _parse_package_uris(self, name: str, value: Any) -> List[str]:
        uris = self._decode_json(name, "packageURI", value, "[]")
        if not isinstance(uris, list) or not all(isinstance(uri, str) for uri in uris):
            raise CatalogPayloadError(
                f"Software '{name}' field 'packageURI' must be an array of strings"
            )
        return uris

    def _parse_extra(self, name: str, value: Any) -> Dict[str, Any]:
        if isinstance(value, dict):
            return value
        extra = self._decode_json(name, "extra", value, "{}")
        if not isinstance(extra, dict):
            raise CatalogPayloadError(f"Software '{name}' field 'extra' must be an object")
        return extra

    def _decode_json(self, name: str, field: str, value: Any, default: str) -> Any:
        if not value:
            value = default
        if not isinstance(value, str):
            raise CatalogPayloadError(
                f"Software '{name}' field '{field}' must be a JSON string"
            )
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            logger.warning("Malformed %s for software %s: %s", field, name, exc)
            raise CatalogPayloadError(
                f"Software '{name}' field '{field}' is not valid JSON: {exc}"
            ) from exc
