import asyncio
import logging
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from storefront.bridge.base import StoreBridge
from storefront.catalog.models import LocalPackage, PackageQuery
from storefront.jobs.manager import JobManager
from storefront.jobs.models import Job, JobKind

logger = logging.getLogger(__name__)


def parse_package_name(uri: str) -> str:
    """Debian package name referenced by a package URI.

    Accepts ``scheme://name``, ``scheme:name`` and bare names; a query string
    is dropped and the last path segment is the package name.
    """
    cleaned = uri.strip()
    if "://" in cleaned:
        parts = urlsplit(cleaned)
        cleaned = f"{parts.netloc}{parts.path}"
    elif ":" in cleaned:
        cleaned = cleaned.split(":", 1)[1]
    cleaned = cleaned.split("?", 1)[0].strip("/")
    return cleaned.split("/")[-1]


def package_names(query: PackageQuery) -> List[str]:
    names = [parse_package_name(item.package_uri) for item in query.packages]
    names = [name for name in names if name]
    return names or [query.name]


def parse_policy(output: str) -> Tuple[Optional[str], Optional[str]]:
    installed = candidate = None
    for line in output.splitlines():
        key, _, value = line.strip().partition(":")
        value = value.strip()
        if value == "(none)":
            value = None
        if key == "Installed":
            installed = value
        elif key == "Candidate":
            candidate = value
    return installed, candidate


def parse_print_uris(output: str) -> int:
    total = 0
    for line in output.splitlines():
        fields = line.split()
        if len(fields) >= 3 and fields[0].startswith("'") and fields[2].isdigit():
            total += int(fields[2])
    return total


class DebianStoreBridge(StoreBridge):
    def __init__(self, job_manager: Optional[JobManager] = None):
        self.jobs = job_manager or JobManager()

    async def _run(self, *command: str) -> Tuple[int, str]:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        stdout, _ = await process.communicate()
        return process.returncode, stdout.decode("utf-8", errors="replace")

    async def is_installed(self, name: str) -> bool:
        code, output = await self._run("dpkg-query", "-W", "-f=${Status}", name)
        return code == 0 and output.split()[-1:] == ["installed"]

    async def query_packages(self, queries: List[PackageQuery]) -> Dict[str, LocalPackage]:
        packages: Dict[str, LocalPackage] = {}
        for query in queries:
            for package_name in package_names(query):
                _, output = await self._run("apt-cache", "policy", package_name)
                installed, candidate = parse_policy(output)
                if not installed and not candidate:
                    continue
                packages[query.name] = LocalPackage(
                    name=query.name,
                    package_name=package_name,
                    local_version=installed,
                    remote_version=candidate,
                    upgradable=bool(installed and candidate and installed != candidate),
                )
                break
        logger.debug("Matched %d of %d package queries", len(packages), len(queries))
        return packages

    async def query_download_size(self, queries: List[PackageQuery]) -> int:
        names = [name for query in queries for name in package_names(query)]
        code, output = await self._run(
            "apt-get", "install", "--print-uris", "-qq", "-y", *names
        )
        if code != 0:
            raise RuntimeError(f"Unable to compute download size for {', '.join(names)}")
        return parse_print_uris(output)

    async def get_job_by_name(self, name: str) -> Optional[Job]:
        return self.jobs.find_active(name)

    async def install_packages(self, queries: List[PackageQuery]):
        await self._run_job(JobKind.INSTALL, queries, ["apt-get", "install", "-y"])

    async def remove_packages(self, queries: List[PackageQuery]):
        await self._run_job(JobKind.REMOVE, queries, ["apt-get", "remove", "-y"])

    async def open_app(self, query: PackageQuery):
        code, _ = await self._run("gtk-launch", query.local_name or query.name)
        if code != 0:
            raise RuntimeError(f"Unable to open {query.name}")

    async def _run_job(self, kind: JobKind, queries: List[PackageQuery], command: List[str]) -> Job:
        names = [query.name for query in queries]
        targets = [name for query in queries for name in package_names(query)]
        job_id = self.jobs.create_job(kind, names, [*command, *targets])
        logger.info("%s job %s started for %s", kind.value, job_id, ", ".join(names))
        return await self.jobs.wait(job_id)
