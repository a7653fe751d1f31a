"""JSON body helpers shared by the API routers."""

from __future__ import annotations

import json

from fastapi import Request
from fastapi.responses import JSONResponse

# Raised by ``from_dict`` when a field holds the wrong JSON type.
MALFORMED_BODY_ERRORS = (AttributeError, KeyError, TypeError, ValueError)


async def read_json(request: Request) -> dict | None:
    """Parse a JSON object body. Returns None if it is not one."""
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def bad_request(error: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"passed": False, "error": error})
