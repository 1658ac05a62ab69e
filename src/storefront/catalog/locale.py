from functools import cmp_to_key
from typing import List, Optional, Sequence, TypeVar

from storefront.catalog.models import LocaleRecord
from storefront.config.settings import FALLBACK_LOCALES, StoreConfig

R = TypeVar("R", bound=LocaleRecord)


class LocaleResolver:
    """Pick locale-tagged records against the ``[locale, en_US, zh_CN]`` chain."""

    def __init__(self, locale: str):
        self.locale = locale
        self.chain = [locale, *FALLBACK_LOCALES]

    @classmethod
    def from_config(cls, config: StoreConfig) -> "LocaleResolver":
        return cls(config.locale)

    def position(self, locale: str) -> int:
        # Locales outside the chain sort after every chain member.
        try:
            return self.chain.index(locale)
        except ValueError:
            return len(self.chain)

    def sort_key(self, record: LocaleRecord) -> int:
        return self.position(record.locale)

    def rank(self, a: LocaleRecord, b: LocaleRecord) -> int:
        return self.position(a.locale) - self.position(b.locale)

    def sort(self, candidates: Sequence[R]) -> List[R]:
        return sorted(candidates, key=cmp_to_key(self.rank))

    def best(self, candidates: Sequence[R]) -> Optional[R]:
        ordered = self.sort(candidates)
        return ordered[0] if ordered else None

    def filter_preferred(self, candidates: Sequence[R]) -> List[R]:
        if any(item.locale == self.locale for item in candidates):
            return [item for item in candidates if item.locale == self.locale]
        return [item for item in candidates if item.locale == "en_US"]
