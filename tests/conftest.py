from typing import Any, Dict, List, Optional

import pytest

from storefront.bridge.base import StoreBridge
from storefront.catalog.models import LocalPackage, PackageQuery, Stat
from storefront.config.settings import StoreConfig
from storefront.jobs.models import Job, JobKind


class FakeCatalogClient:
    def __init__(self, stats: Optional[List[Dict[str, Any]]] = None, software=None):
        self.stats = [Stat.model_validate(item) for item in stats or []]
        self.software = software or []
        self.stat_calls: List[Dict[str, Any]] = []
        self.software_calls: List[List[str]] = []

    async def fetch_stats(self, params):
        self.stat_calls.append(dict(params))
        return self.stats

    async def fetch_software(self, names):
        self.software_calls.append(sorted(names))
        return [record for record in self.software if record["name"] in names] if names else self.software


class FakeBridge(StoreBridge):
    def __init__(self, packages: Optional[Dict[str, LocalPackage]] = None):
        self.packages = packages or {}
        self.installed: set = set()
        self.jobs: Dict[str, Job] = {}
        self.calls: List[tuple] = []
        self.failures = 0

    async def query_packages(self, queries: List[PackageQuery]):
        self.calls.append(("query_packages", [query.name for query in queries]))
        return {q.name: self.packages[q.name] for q in queries if q.name in self.packages}

    async def query_download_size(self, queries):
        self.calls.append(("size", [query.name for query in queries]))
        return 1024 * len(queries)

    async def is_installed(self, name):
        if self.failures:
            self.failures -= 1
            raise RuntimeError("bridge unavailable")
        return name in self.installed

    async def get_job_by_name(self, name):
        return self.jobs.get(name)

    async def install_packages(self, queries):
        self.calls.append(("install", [query.name for query in queries]))

    async def remove_packages(self, queries):
        self.calls.append(("remove", [query.name for query in queries]))

    async def open_app(self, query):
        self.calls.append(("open", query.name, query.local_name))

    def start_job(self, name: str):
        self.jobs[name] = Job(id=f"job-{name}", kind=JobKind.INSTALL, names=[name], command=[])


def software_record(name: str, **info) -> Dict[str, Any]:
    return {
        "id": 1,
        "name": name,
        "info": {"name": name, "icon": f"{name}/icon.png", **info},
        "desc": [
            {"locale": "en_US", "name": name.title(), "description": f"{name} app", "slogan": ""},
        ],
        "tags": [{"locale": "en_US", "tag": "tools"}],
        "images": [],
    }


@pytest.fixture
def store_config():
    return StoreConfig(
        locale="de_DE",
        metadata_server="https://meta.example",
        operation_server="https://ops.example",
    )


@pytest.fixture
def bridge():
    return FakeBridge()
