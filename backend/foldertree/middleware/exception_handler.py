"""Exception handler middleware for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import CorruptTreeError, DatabaseError, FolderTreeError

logger = logging.getLogger(__name__)


async def folder_tree_exception_handler(request: Request, exc: FolderTreeError) -> JSONResponse:
    """
    Convert a typed folder tree error into its JSON response.

    The status code comes from the exception class itself; client errors
    are logged at WARNING, server-side failures at ERROR.

    Args:
        request: FastAPI request object
        exc: FolderTreeError instance

    Returns:
        JSONResponse with error details
    """
    level = logging.ERROR if isinstance(exc, (CorruptTreeError, DatabaseError)) else logging.WARNING
    logger.log(
        level,
        f"FolderTreeError: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
