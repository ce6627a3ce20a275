"""
Resource API endpoints.

Every path under the API version prefix lands here, including malformed ones,
so the address parser (not the framework's route matcher) decides what is a
400. `main` mounts this router at `settings.api_version`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from core.context import AppContext, get_context

from . import schemas, service
from .addressing import ResourceAddress

router = APIRouter()


def _address(request: Request, context: AppContext) -> ResourceAddress:
    return context.routes.parse(request.url.path)


@router.get("/{path:path}", response_model=None)
async def get_resource(
    request: Request,
    context: AppContext = Depends(get_context),
) -> Response | dict:
    """
    `{type}LIST/` allocates a fresh identifier; `{type}/{id}` returns the stored body.
    """
    address = _address(request, context)
    if address.identifier is None:
        identifier = await service.allocate(context, address)
        return schemas.IdentifierResponse(identifier=identifier).model_dump(mode="json")

    body = await service.read(context, address)
    return Response(content=body, media_type="application/json")


@router.post("/{path:path}", status_code=status.HTTP_201_CREATED)
async def create_resource(
    request: Request,
    context: AppContext = Depends(get_context),
) -> schemas.IdentifierResponse:
    """
    Create a resource from the request body on the list key; the store picks the identifier.
    """
    address = _address(request, context)
    identifier = await service.create(context, address, await request.body())
    return schemas.IdentifierResponse(identifier=identifier)


@router.put("/{path:path}", response_model=None)
async def put_resource(
    request: Request,
    context: AppContext = Depends(get_context),
) -> JSONResponse:
    address = _address(request, context)
    result = await service.replace(context, address, await request.body())
    payload = schemas.IdentifierResponse(identifier=result.identifier).model_dump(mode="json")
    status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return JSONResponse(content=payload, status_code=status_code)


@router.delete("/{path:path}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_resource(
    request: Request,
    context: AppContext = Depends(get_context),
) -> Response:
    address = _address(request, context)
    await service.delete(context, address)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
