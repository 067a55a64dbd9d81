"""Shared route dependencies and the success envelope."""
from typing import Any, Awaitable, Callable

from fastapi import Request

from f1_proxy.core.validation import Params, Schema, merge_params, validate_params
from f1_proxy.services.f1_data import F1DataService


def get_data_service(request: Request) -> F1DataService:
    """The service instance owned by the running app."""
    return request.app.state.f1_data


def validated(schema: Schema) -> Callable[[Request], Awaitable[Params]]:
    """Dependency that validates path + query parameters against ``schema``.

    Path parameters win over query parameters of the same name.
    """

    async def dependency(request: Request) -> Params:
        raw = merge_params(request.path_params, request.query_params)
        return validate_params(schema, raw)

    dependency.__name__ = f"validate_{schema.value}"
    return dependency


def envelope(data: Any, endpoint: str, params: Params | None, cached: bool) -> dict[str, Any]:
    """Success response: upstream payload untouched plus request metadata."""
    meta: dict[str, Any] = {"endpoint": endpoint}
    if params is not None:
        meta.update(params.echo())
    meta["cached"] = cached
    return {"success": True, "data": data, "meta": meta}
