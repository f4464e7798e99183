"""Tagged request failures and the single middleware that renders them.

Handlers and gates never build error responses themselves. They raise
:class:`GatewayError` with a kind tag; :func:`error_funnel` is the only place
that knows how a kind becomes an HTTP status.
"""

from __future__ import annotations

import logging
from typing import Union

from aiohttp import web

logger = logging.getLogger(__name__)

H400 = "h400"
H401 = "h401"
H403 = "h403"
H404 = "h404"
H409 = "h409"
H500 = "h500"

STATUS_BY_KIND = {
    H400: 400,
    H401: 401,
    H403: 403,
    H404: 404,
    H409: 409,
    H500: 500,
}

DEFAULT_STATUS = 500


class GatewayError(Exception):
    """A failed request, tagged with the kind that decides its status.

    Attributes:
        kind: One of the ``h4xx``/``h5xx`` tags in ``STATUS_BY_KIND``.
        detail: Message string, or the downstream exception that caused it.
    """

    def __init__(self, kind: str, detail: Union[str, BaseException]) -> None:
        super().__init__(kind, detail)
        self.kind = kind
        self.detail = detail

    @property
    def status(self) -> int:
        return status_for(self.kind)

    @property
    def message(self) -> str:
        return str(self.detail)


def status_for(kind: str) -> int:
    """Map an error kind to its HTTP status. Unknown kinds are server errors."""
    return STATUS_BY_KIND.get(kind, DEFAULT_STATUS)


def error_response(err: GatewayError) -> web.Response:
    return json_error(err.status, err.message)


def json_error(status: int, message: str) -> web.Response:
    return web.json_response({"status": status, "message": message}, status=status)


@web.middleware
async def error_funnel(request: web.Request, handler) -> web.StreamResponse:
    """Convert every failure below this middleware into a JSON error body."""
    try:
        return await handler(request)
    except GatewayError as err:
        if err.status >= 500:
            logger.error(
                f"{request.method} {request.path_qs} failed [{err.kind}]: {err.message}",
                exc_info=err.detail if isinstance(err.detail, BaseException) else None,
            )
        else:
            logger.info(f"{request.method} {request.path_qs} -> {err.status} ({err.message})")
        return error_response(err)
    except web.HTTPException as e:
        # aiohttp's own failures (oversized body, bad request line) keep
        # their status but get the same JSON body as everything else.
        if e.status < 400:
            raise
        message = e.text or e.reason
        logger.info(f"{request.method} {request.path_qs} -> {e.status} ({message})")
        return json_error(e.status, message)
    except Exception as e:
        logger.exception(f"Unhandled error on {request.method} {request.path_qs}")
        return error_response(GatewayError(H500, e))
