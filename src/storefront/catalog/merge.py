from typing import Dict, Iterable, List, Mapping, Optional

from storefront.catalog.models import LocalPackage, PackageQuery, SoftwareEntry, Stat


def with_stat(entry: SoftwareEntry, stat: Optional[Stat]) -> SoftwareEntry:
    return entry.model_copy(update={"stat": stat})


def with_package(entry: SoftwareEntry, package: Optional[LocalPackage]) -> SoftwareEntry:
    return entry.model_copy(update={"package": package})


def attach_stats(
    entries: Mapping[str, SoftwareEntry], stats: Mapping[str, Stat]
) -> Dict[str, SoftwareEntry]:
    return {name: with_stat(entry, stats.get(name)) for name, entry in entries.items()}


def attach_packages(
    entries: Mapping[str, SoftwareEntry], packages: Mapping[str, LocalPackage]
) -> Dict[str, SoftwareEntry]:
    return {
        name: with_package(entry, packages.get(name)) for name, entry in entries.items()
    }


def to_query(entry: SoftwareEntry) -> PackageQuery:
    return PackageQuery(
        name=entry.name, local_name=entry.info.name, packages=entry.info.packages
    )


def ordered(entries: Mapping[str, SoftwareEntry], names: Iterable[str]) -> List[SoftwareEntry]:
    """Entries in ``names`` order; names without an entry are skipped."""
    return [entries[name] for name in names if name in entries]
