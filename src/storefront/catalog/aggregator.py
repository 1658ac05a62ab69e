import logging
from typing import Dict, List, Optional

from storefront.bridge.base import StoreBridge
from storefront.catalog.client import CatalogClient
from storefront.catalog.merge import attach_packages, attach_stats, ordered, to_query
from storefront.catalog.models import QueryFilter, SoftwareEntry, Stat
from storefront.catalog.normalizer import MetadataNormalizer
from storefront.config.settings import StoreConfig

logger = logging.getLogger(__name__)


class BridgeUnavailableError(RuntimeError):
    pass


class CatalogAggregator:
    """Joins metadata, stats and local package state into catalog entries.

    Every ``list`` call fetches fresh data; nothing is cached between calls.
    Entries come back in the order of the final name list: the requested
    names, narrowed by the stat query (or taken from it when no names were
    given) and by local package availability when asked to.
    """

    def __init__(
        self,
        config: StoreConfig,
        client: Optional[CatalogClient] = None,
        bridge: Optional[StoreBridge] = None,
        normalizer: Optional[MetadataNormalizer] = None,
    ):
        self.config = config
        self.client = client or CatalogClient(config)
        self.bridge = bridge
        self.normalizer = normalizer or MetadataNormalizer.from_config(config)

    @property
    def native(self) -> bool:
        return self.config.native and self.bridge is not None

    async def list(self, query: Optional[QueryFilter] = None) -> List[SoftwareEntry]:
        query = query or QueryFilter()
        names = list(dict.fromkeys(query.names))

        stats: Dict[str, Stat] = {}
        if query.filter_stat:
            stat_list = await self.client.fetch_stats(query.stat_params())
            if not stat_list:
                logger.debug("Stat query matched nothing; skipping metadata query")
                return []
            stats = {stat.name: stat for stat in stat_list}
            if names:
                names = [name for name in names if name in stats]
            else:
                names = [stat.name for stat in stat_list]

        entries = await self._fetch_entries(names)
        entries = attach_stats(entries, stats)

        if self.native:
            if not entries:
                return []
            packages = await self.bridge.query_packages(
                [to_query(entry) for entry in entries.values()]
            )
            entries = attach_packages(entries, packages)
            if query.filter_package:
                names = [name for name in names if name in packages]

        return ordered(entries, names)

    async def get(self, name: str) -> Optional[SoftwareEntry]:
        found = await self.list(
            QueryFilter(names=[name], filter_stat=False, filter_package=False)
        )
        return found[0] if found else None

    async def _fetch_entries(self, names: List[str]) -> Dict[str, SoftwareEntry]:
        records = await self.client.fetch_software(names)
        entries = {}
        for record in records:
            entry = self.normalizer.normalize(record)
            entries[entry.name] = entry
        return entries

    def _require_bridge(self) -> StoreBridge:
        if self.bridge is None:
            raise BridgeUnavailableError("No store bridge is configured")
        return self.bridge

    async def size(self, entry: SoftwareEntry) -> int:
        return await self._require_bridge().query_download_size([to_query(entry)])

    async def open(self, entry: SoftwareEntry):
        await self._require_bridge().open_app(to_query(entry))

    async def remove(self, *entries: SoftwareEntry):
        await self._require_bridge().remove_packages([to_query(entry) for entry in entries])

    async def install(self, *entries: SoftwareEntry):
        logger.info("Installing %s", ", ".join(entry.name for entry in entries))
        await self._require_bridge().install_packages([to_query(entry) for entry in entries])
