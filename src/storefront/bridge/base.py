from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from storefront.catalog.models import LocalPackage, PackageQuery
from storefront.jobs.models import Job


class StoreBridge(ABC):
    """Operations the store delegates to the local package daemon."""

    @abstractmethod
    async def query_packages(self, queries: List[PackageQuery]) -> Dict[str, LocalPackage]:
        pass

    @abstractmethod
    async def query_download_size(self, queries: List[PackageQuery]) -> int:
        pass

    @abstractmethod
    async def is_installed(self, name: str) -> bool:
        pass

    @abstractmethod
    async def get_job_by_name(self, name: str) -> Optional[Job]:
        pass

    @abstractmethod
    async def install_packages(self, queries: List[PackageQuery]):
        pass

    @abstractmethod
    async def remove_packages(self, queries: List[PackageQuery]):
        pass

    @abstractmethod
    async def open_app(self, query: PackageQuery):
        pass
