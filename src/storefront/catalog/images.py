from typing import Dict, List, Optional, Sequence

from storefront.catalog.locale import LocaleResolver
from storefront.catalog.models import ImageRecord, ImageType
from storefront.config.settings import StoreConfig


class ImageSelector:
    def __init__(
        self,
        resolver: LocaleResolver,
        media_base_url: str,
        device_pixel_ratio: float = 1,
    ):
        self.resolver = resolver
        self.media_base_url = media_base_url
        self.device_pixel_ratio = device_pixel_ratio

    @classmethod
    def from_config(
        cls, config: StoreConfig, resolver: Optional[LocaleResolver] = None
    ) -> "ImageSelector":
        return cls(
            resolver=resolver or LocaleResolver.from_config(config),
            media_base_url=config.media_base_url,
            device_pixel_ratio=config.device_pixel_ratio,
        )

    @property
    def density_order(self) -> List[int]:
        # The HD variant of an image type is declared as type + 1.
        return [0, 1] if self.device_pixel_ratio == 1 else [1, 0]

    def url(self, path: str) -> str:
        return f"{self.media_base_url}{path}"

    def select_cover(self, images: Sequence[ImageRecord]) -> Optional[str]:
        for density in self.density_order:
            tier = [img for img in images if img.type == ImageType.COVER + density]
            cover = self.resolver.best(tier)
            if cover:
                return self.url(cover.path)
        return None

    def select_screenshots(self, images: Sequence[ImageRecord]) -> List[str]:
        for density in self.density_order:
            groups: Dict[str, List[ImageRecord]] = {}
            for img in images:
                if img.type == ImageType.SCREENSHOT + density:
                    groups.setdefault(img.locale, []).append(img)
            if not groups:
                continue

            best_locale = min(groups, key=self.resolver.position)
            ordered = sorted(groups[best_locale], key=lambda img: img.order)
            return [self.url(img.path) for img in ordered]
        return []
