from enum import IntEnum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ImageType(IntEnum):
    INVALID = 0
    ICON = 1
    COVER = 2
    COVER_HD = 3
    SCREENSHOT = 4
    SCREENSHOT_HD = 5


class Source(IntEnum):
    THIRD_PARTY = 0
    OFFICIAL = 1
    COLLABORATIVE = 2


class LocaleRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    locale: str = ""


class Description(LocaleRecord):
    name: str = ""
    description: str = ""
    slogan: str = ""


class Tag(LocaleRecord):
    tag: str = ""


class ImageRecord(LocaleRecord):
    path: str
    type: int = ImageType.INVALID
    order: int = 0


class PackageURI(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    package_uri: str = Field(alias="packageURI")


class SoftwareInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    description: str = ""
    slogan: str = ""
    locale: str = ""
    author: str = ""
    packager: str = ""
    category: str = ""
    home_page: str = Field(default="", alias="homePage")
    source: Optional[int] = None
    icon: Optional[str] = None
    cover: Optional[str] = None
    screenshot: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    packages: List[PackageURI] = Field(default_factory=list)
    extra: Dict[str, Any] = Field(default_factory=dict)
    versions: List[Any] = Field(default_factory=list)


class Stat(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    score: float = 0
    score_count: int = 0
    download: int = 0


class LocalPackage(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    package_name: Optional[str] = None
    local_version: Optional[str] = None
    remote_version: Optional[str] = None
    upgradable: bool = False
    installed_time: Optional[int] = None
    size: Optional[int] = None


class SoftwareEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    info: SoftwareInfo
    stat: Optional[Stat] = None
    package: Optional[LocalPackage] = None


class PackageQuery(BaseModel):
    """Identity of an entry as handed to the store bridge."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    local_name: str = Field(default="", alias="localName")
    packages: List[PackageURI] = Field(default_factory=list)


STAT_QUERY_FIELDS = [
    "order",
    "offset",
    "limit",
    "category",
    "tag",
    "keyword",
    "names",
    "author",
    "packager",
]


class QueryFilter(BaseModel):
    order: Literal["download", "score"] = "download"
    offset: int = 0
    limit: int = 20
    category: str = ""
    tag: str = ""
    keyword: str = ""
    author: str = ""
    packager: str = ""
    names: List[str] = Field(default_factory=list)
    filter_package: bool = True
    filter_stat: bool = True

    @field_validator("names")
    @classmethod
    def _unique_names(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    def stat_params(self) -> Dict[str, Any]:
        """Filter fields for the stat query, with falsy values left out."""
        params = {}
        for key in STAT_QUERY_FIELDS:
            value = getattr(self, key)
            if value:
                params[key] = value
        return params
