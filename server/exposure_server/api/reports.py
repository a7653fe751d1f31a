"""Global infection report API endpoints (day-partitioned, no region)."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse

from exposure_server.api.parsing import MALFORMED_BODY_ERRORS, bad_request, read_json
from exposure_server.core.models import AreaReport, MessageListResponse

router = APIRouter(prefix="/api/v1/reports")


@router.head("/list")
async def head_report_list(
    last_timestamp: int | None = Query(default=None, alias="lastTimestamp"),
) -> Response:
    from exposure_server.main import get_report_service, get_stats

    size = await get_report_service().get_latest_data_size(last_timestamp)
    get_stats().record_size_probe(size)
    return Response(status_code=200, headers={"Content-Length": str(size)})


@router.get("/list")
async def get_report_list(
    last_timestamp: int | None = Query(default=None, alias="lastTimestamp"),
) -> JSONResponse:
    from exposure_server.main import get_report_service, get_stats

    infos = await get_report_service().get_latest_info(last_timestamp)
    get_stats().record_list(len(infos))
    return JSONResponse(content=MessageListResponse.from_infos(infos).to_dict())


@router.post("/query")
async def query_reports(request: Request) -> JSONResponse:
    from exposure_server.main import get_report_service, get_stats

    body = await read_json(request)
    if body is None:
        return bad_request("invalid JSON")

    reports = await get_report_service().get_by_ids(body.get("ids"))
    get_stats().record_fetch(len(reports))
    return JSONResponse(content={"reports": [r.to_dict() for r in reports]})


@router.put("/areareport")
async def publish_area_report(request: Request) -> JSONResponse:
    """Publish an area report. Body: the AreaReport itself."""
    from exposure_server.main import get_report_service, get_stats

    body = await read_json(request)
    if body is None:
        return bad_request("invalid JSON")
    try:
        report = AreaReport.from_dict(body)
    except MALFORMED_BODY_ERRORS:
        return bad_request("malformed area report")

    report_id = await get_report_service().publish_area_report(report)
    get_stats().record_published(report=True)
    return JSONResponse(content={"id": report_id})
