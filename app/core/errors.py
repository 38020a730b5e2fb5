from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

_LOG = logging.getLogger("app.query")


class QueryError(ValueError):
    """Client input rejected by the query engine. Mapped to HTTP 400."""


class InvalidPagingError(QueryError):
    pass


class UnknownFieldError(QueryError):
    def __init__(self, field_name: str, record_type: str):
        super().__init__(f'Unknown field "{field_name}" for {record_type}')
        self.field_name = field_name
        self.record_type = record_type


class InvalidFilterValueError(QueryError):
    def __init__(self, field_name: str, kind: str):
        super().__init__(f'Invalid filter value for field "{field_name}" ({kind})')
        self.field_name = field_name
        self.kind = kind


class InvalidSortOrderError(QueryError):
    def __init__(self, sort_order: str):
        super().__init__("Invalid sort order. Use 'asc' or 'desc'")
        self.sort_order = sort_order


class UnsupportedOperatorError(QueryError):
    def __init__(self, operator: str, field_name: str, kind: str):
        super().__init__(f'Operator "{operator}" is not supported for field "{field_name}" ({kind})')
        self.operator = operator
        self.field_name = field_name
        self.kind = kind


class QueryCancelledError(Exception):
    """The caller cancelled the query before results were materialized."""


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(QueryError)
    async def _query_error_handler(request: Request, exc: QueryError):
        _LOG.info(
            "%s %s rejected: %s request_id=%s",
            request.method,
            request.url.path,
            exc,
            getattr(request.state, "request_id", None),
        )
        return JSONResponse(status_code=400, content={"detail": str(exc)})
