from typing import List, Optional

from pydantic import BaseModel, Field

from storefront.catalog.models import SoftwareEntry


class BaseResponse(BaseModel):
    status: str = "success"
    message: Optional[str] = None


class SoftwareListResponse(BaseResponse):
    data: List[SoftwareEntry]


class SoftwareDetailResponse(BaseResponse):
    data: SoftwareEntry


class DownloadSize(BaseModel):
    name: str
    size: int


class DownloadSizeResponse(BaseResponse):
    data: DownloadSize


class PackageOperationRequest(BaseModel):
    names: List[str] = Field(min_length=1)


class PackageOperationResponse(BaseResponse):
    data: List[str]
