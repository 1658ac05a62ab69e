import asyncio
import traceback
from typing import List, Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.logger import logger

from storefront.api.dtos import (
    DownloadSize,
    DownloadSizeResponse,
    PackageOperationRequest,
    PackageOperationResponse,
    SoftwareDetailResponse,
    SoftwareListResponse,
)
from storefront.catalog.aggregator import BridgeUnavailableError, CatalogAggregator
from storefront.catalog.errors import CatalogError
from storefront.catalog.models import QueryFilter, SoftwareEntry
from storefront.status.tracker import InstallStatusTracker

router = APIRouter(prefix="/catalog", tags=["Catalog"])


def _aggregator(request: Request) -> CatalogAggregator:
    return request.app.state.aggregator


def _upstream_error(action: str, exc: Exception) -> HTTPException:
    logger.error("Error %s: %s\n%s", action, exc, traceback.format_exc())
    if isinstance(exc, BridgeUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, CatalogError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


async def _resolve(aggregator: CatalogAggregator, names: List[str]) -> List[SoftwareEntry]:
    entries = await aggregator.list(
        QueryFilter(names=names, filter_stat=False, filter_package=False)
    )
    missing = sorted(set(names) - {entry.name for entry in entries})
    if missing:
        raise HTTPException(
            status_code=404, detail=f"Software not found: {', '.join(missing)}"
        )
    return entries


@router.get("/apps", response_model=SoftwareListResponse)
async def list_software(
    request: Request,
    order: Literal["download", "score"] = Query("download"),
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=500),
    category: str = Query(""),
    tag: str = Query(""),
    keyword: str = Query(""),
    author: str = Query(""),
    packager: str = Query(""),
    names: List[str] = Query([]),
    filter_package: bool = Query(True),
    filter_stat: bool = Query(True),
):
    query = QueryFilter(
        order=order,
        offset=offset,
        limit=limit,
        category=category,
        tag=tag,
        keyword=keyword,
        author=author,
        packager=packager,
        names=names,
        filter_package=filter_package,
        filter_stat=filter_stat,
    )
    try:
        entries = await _aggregator(request).list(query)
    except Exception as exc:
        raise _upstream_error("listing catalog entries", exc)
    return SoftwareListResponse(data=entries)


@router.get("/apps/{name}", response_model=SoftwareDetailResponse)
async def get_software(request: Request, name: str):
    try:
        entry = await _aggregator(request).get(name)
    except Exception as exc:
        raise _upstream_error(f"loading {name}", exc)
    if not entry:
        raise HTTPException(status_code=404, detail=f"Software '{name}' not found")
    return SoftwareDetailResponse(data=entry)


@router.get("/apps/{name}/size", response_model=DownloadSizeResponse)
async def get_download_size(request: Request, name: str):
    aggregator = _aggregator(request)
    try:
        (entry,) = await _resolve(aggregator, [name])
        size = await aggregator.size(entry)
    except HTTPException:
        raise
    except Exception as exc:
        raise _upstream_error(f"computing download size for {name}", exc)
    return DownloadSizeResponse(data=DownloadSize(name=name, size=size))


@router.post("/apps/install", response_model=PackageOperationResponse)
async def install_software(request: Request, payload: PackageOperationRequest):
    aggregator = _aggregator(request)
    try:
        entries = await _resolve(aggregator, payload.names)
        await aggregator.install(*entries)
    except HTTPException:
        raise
    except Exception as exc:
        raise _upstream_error("installing software", exc)
    return PackageOperationResponse(
        message="Install finished", data=[entry.name for entry in entries]
    )


@router.post("/apps/remove", response_model=PackageOperationResponse)
async def remove_software(request: Request, payload: PackageOperationRequest):
    aggregator = _aggregator(request)
    try:
        entries = await _resolve(aggregator, payload.names)
        await aggregator.remove(*entries)
    except HTTPException:
        raise
    except Exception as exc:
        raise _upstream_error("removing software", exc)
    return PackageOperationResponse(
        message="Remove finished", data=[entry.name for entry in entries]
    )


@router.post("/apps/{name}/open", response_model=PackageOperationResponse)
async def open_software(request: Request, name: str):
    aggregator = _aggregator(request)
    try:
        (entry,) = await _resolve(aggregator, [name])
        await aggregator.open(entry)
    except HTTPException:
        raise
    except Exception as exc:
        raise _upstream_error(f"opening {name}", exc)
    return PackageOperationResponse(message=f"Opened {name}", data=[name])


@router.websocket("/apps/{name}/status")
async def software_status(websocket: WebSocket, name: str):
    await websocket.accept()
    tracker: Optional[InstallStatusTracker] = websocket.app.state.tracker
    if tracker is None:
        await websocket.send_json(
            {"type": "error", "message": "No store bridge is configured"}
        )
        await websocket.close()
        return

    subscription = tracker.subscribe(name)

    async def forward():
        async for event in subscription:
            await websocket.send_json(
                {"type": "status", "data": event.model_dump(mode="json")}
            )

    async def wait_for_disconnect():
        # Incoming messages are ignored; receiving is how a disconnect shows up.
        while True:
            await websocket.receive_text()

    forwarder = asyncio.create_task(forward())
    listener = asyncio.create_task(wait_for_disconnect())
    try:
        done, _ = await asyncio.wait(
            [forwarder, listener], return_when=asyncio.FIRST_COMPLETED
        )
        if listener in done:
            if isinstance(listener.exception(), WebSocketDisconnect):
                logger.info("Status websocket for %s disconnected", name)
            else:
                listener.result()
        else:
            forwarder.result()
            await websocket.close()
    finally:
        subscription.close()
        forwarder.cancel()
        listener.cancel()
