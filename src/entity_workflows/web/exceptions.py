"""Exception handling for workflow web endpoints.

Every :class:`~entity_workflows.exceptions.WorkflowsError` is rendered as
``{"error": <code>, "message": <text>, ...details}`` with the status code the
exception declares. Anything else reaching the handlers is logged and answered
with a bare ``internal_server_error``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from litestar import MediaType, Response
from litestar.status_codes import HTTP_500_INTERNAL_SERVER_ERROR

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request

    from entity_workflows.exceptions import WorkflowsError

__all__ = ["internal_error_handler", "workflow_error_handler"]

logger = logging.getLogger(__name__)


def workflow_error_handler(_request: Request, exc: WorkflowsError) -> Response:
    """Exception handler for WorkflowsError.

    Args:
        _request: The Litestar request object.
        exc: The raised workflow error.

    Returns:
        Response with the error code, message and details.
    """
    return Response(
        content={"error": exc.code, "message": str(exc), **exc.extra()},
        status_code=exc.status_code,
        media_type=MediaType.JSON,
    )


def internal_error_handler(request: Request, exc: Exception) -> Response:
    """Exception handler for unexpected failures.

    The traceback is logged; the caller only learns that the request failed.

    Args:
        request: The Litestar request object.
        exc: The unhandled exception.

    Returns:
        A 500 response without internal details.
    """
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return Response(
        content={"error": "internal_server_error", "message": "An unexpected error occurred"},
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        media_type=MediaType.JSON,
    )
