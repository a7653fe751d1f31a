"""Region-keyed message API endpoints.

This is the thin FastAPI adapter. It parses HTTP requests, converts JSON
to internal models, and calls the MessageService.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse

from exposure_server.api.parsing import MALFORMED_BODY_ERRORS, bad_request, read_json
from exposure_server.core.models import (
    AreaReport,
    BluetoothSeed,
    MatchMessage,
    MessageListResponse,
    Region,
)

router = APIRouter(prefix="/api/v1/messages")


def _query_region(lat: float | None, lon: float | None, precision: int | None) -> Region | None:
    if lat is None or lon is None or precision is None:
        return None
    return Region(latitude_prefix=lat, longitude_prefix=lon, precision=precision)


def _parse_region(body: dict) -> Region | None:
    raw = body.get("region")
    return Region.from_dict(raw) if raw is not None else None


@router.head("/list")
async def head_message_list(
    last_timestamp: int | None = Query(default=None, alias="lastTimestamp"),
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    precision: int | None = Query(default=None),
) -> Response:
    """Total size of new messages for a region, via Content-Length, no body."""
    from exposure_server.main import get_message_service, get_stats

    size = await get_message_service().get_latest_data_size(
        _query_region(lat, lon, precision), last_timestamp,
    )
    get_stats().record_size_probe(size)
    return Response(status_code=200, headers={"Content-Length": str(size)})


@router.get("/list")
async def get_message_list(
    last_timestamp: int | None = Query(default=None, alias="lastTimestamp"),
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    precision: int | None = Query(default=None),
) -> JSONResponse:
    """Message ids and timestamps newer than the client's watermark."""
    from exposure_server.main import get_message_service, get_stats

    infos = await get_message_service().get_latest_info(
        _query_region(lat, lon, precision), last_timestamp,
    )
    get_stats().record_list(len(infos))
    return JSONResponse(content=MessageListResponse.from_infos(infos).to_dict())


@router.post("/query")
async def query_messages(request: Request) -> JSONResponse:
    """Fetch full messages by id. Body: {"ids": ["...", ...]}"""
    from exposure_server.main import get_message_service, get_stats

    body = await read_json(request)
    if body is None:
        return bad_request("invalid JSON")

    messages = await get_message_service().get_by_ids(body.get("ids"))
    get_stats().record_fetch(len(messages))
    return JSONResponse(content={"matchMessages": [m.to_dict() for m in messages]})


@router.put("")
async def publish_message(request: Request) -> JSONResponse:
    """Publish a full MatchMessage. Body: {"region": {...}, "matchMessage": {...}}"""
    from exposure_server.main import get_message_service, get_stats

    body = await read_json(request)
    if body is None:
        return bad_request("invalid JSON")
    try:
        region = _parse_region(body)
        raw = body.get("matchMessage")
        message = MatchMessage.from_dict(raw) if raw is not None else None
    except MALFORMED_BODY_ERRORS:
        return bad_request("malformed message")

    message_id = await get_message_service().publish_message(region, message)
    get_stats().record_published()
    return JSONResponse(content={"id": message_id})


@router.put("/areamatch")
async def publish_area_match(request: Request) -> JSONResponse:
    """Publish an area match. Body: {"region": {...}, "areaMatch": {...}}"""
    from exposure_server.main import get_message_service, get_stats

    body = await read_json(request)
    if body is None:
        return bad_request("invalid JSON")
    try:
        region = _parse_region(body)
        raw = body.get("areaMatch")
        area_match = AreaReport.from_dict(raw) if raw is not None else None
    except MALFORMED_BODY_ERRORS:
        return bad_request("malformed area match")

    message_id = await get_message_service().publish_area_match(region, area_match)
    get_stats().record_published()
    return JSONResponse(content={"id": message_id})


@router.put("/seeds")
async def publish_seeds(request: Request) -> JSONResponse:
    """Publish bluetooth seeds. Body: {"region": {...}, "seeds": [...]}"""
    from exposure_server.main import get_message_service, get_stats

    body = await read_json(request)
    if body is None:
        return bad_request("invalid JSON")
    try:
        region = _parse_region(body)
        seeds = [BluetoothSeed.from_dict(s) for s in body.get("seeds") or []]
    except MALFORMED_BODY_ERRORS:
        return bad_request("malformed seeds")

    message_id = await get_message_service().publish_seeds(region, seeds)
    get_stats().record_published()
    return JSONResponse(content={"id": message_id})
