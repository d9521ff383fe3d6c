"""Admin routes for established connections."""

from aiohttp import web
from aiohttp_apispec import docs, match_info_schema, querystring_schema, response_schema
from marshmallow import fields

from ..admin.request_context import AdminRequestContext
from ..messaging.models.base import BaseModelError
from ..messaging.models.openapi import OpenAPISchema
from ..messaging.valid import (
    GENERIC_DID_EXAMPLE,
    GENERIC_DID_VALIDATE,
    UUID4_EXAMPLE,
    one_of,
)
from ..storage.error import StorageError, StorageNotFoundError
from .models.conn_record import ConnRecord, ConnRecordSchema

# query parameters stored as record tags, and those only in the record value
TAG_PARAMS = ("invitation_id", "their_did")
VALUE_PARAMS = ("alias", "their_role")


class EmptyResultSchema(OpenAPISchema):
    """Empty result."""


class ConnRecordListSchema(OpenAPISchema):
    """Connection records, newest first."""

    results = fields.List(
        fields.Nested(ConnRecordSchema()),
        metadata={"description": "Connection records"},
    )


class ConnRecordQuerySchema(OpenAPISchema):
    """Connection list filters."""

    alias = fields.Str(
        required=False, metadata={"description": "Local alias", "example": "Acme"}
    )
    invitation_id = fields.Str(
        required=False,
        metadata={
            "description": "Invitation the connection came from",
            "example": UUID4_EXAMPLE,
        },
    )
    their_did = fields.Str(
        required=False,
        validate=GENERIC_DID_VALIDATE,
        metadata={"description": "Peer DID", "example": GENERIC_DID_EXAMPLE},
    )
    their_role = fields.Str(
        required=False,
        validate=one_of((ConnRecord.ROLE_INVITER, ConnRecord.ROLE_INVITEE)),
        metadata={"description": "Peer role", "example": ConnRecord.ROLE_INVITER},
    )


class ConnIdMatchInfoSchema(OpenAPISchema):
    """Connection id path parameter."""

    conn_id = fields.Str(
        required=True,
        metadata={"description": "Connection identifier", "example": UUID4_EXAMPLE},
    )


@docs(tags=["connection"], summary="List connections of the wallet")
@querystring_schema(ConnRecordQuerySchema())
@response_schema(ConnRecordListSchema(), 200, description="")
async def connections_list(request: web.BaseRequest):
    """List connection records, newest first."""
    context: AdminRequestContext = request["context"]
    query = request.query
    tag_filter = {name: query[name] for name in TAG_PARAMS if query.get(name)}
    value_filter = {name: query[name] for name in VALUE_PARAMS if query.get(name)}

    try:
        async with context.session() as session:
            records = await ConnRecord.query(
                session, tag_filter, post_filter_positive=value_filter
            )
    except (StorageError, BaseModelError) as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err

    return web.json_response(
        {"results": [record.serialize() for record in reversed(records)]}
    )


@docs(tags=["connection"], summary="Fetch one connection")
@match_info_schema(ConnIdMatchInfoSchema())
@response_schema(ConnRecordSchema(), 200, description="")
async def connections_retrieve(request: web.BaseRequest):
    context: AdminRequestContext = request["context"]

    try:
        async with context.session() as session:
            record = await ConnRecord.retrieve_by_id(
                session, request.match_info["conn_id"]
            )
    except StorageNotFoundError as err:
        raise web.HTTPNotFound(reason=err.roll_up) from err
    except BaseModelError as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err

    return web.json_response(record.serialize())


@docs(tags=["connection"], summary="Forget a connection")
@match_info_schema(ConnIdMatchInfoSchema())
@response_schema(EmptyResultSchema(), 200, description="")
async def connections_remove(request: web.BaseRequest):
    """Delete a connection record; the peer is not notified."""
    context: AdminRequestContext = request["context"]

    try:
        async with context.session() as session:
            record = await ConnRecord.retrieve_by_id(
                session, request.match_info["conn_id"]
            )
            await record.delete_record(session)
    except StorageNotFoundError as err:
        raise web.HTTPNotFound(reason=err.roll_up) from err
    except StorageError as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err

    return web.json_response({})


async def register(app: web.Application):
    app.add_routes(
        [
            web.get("/connections", connections_list, allow_head=False),
            web.get("/connections/{conn_id}", connections_retrieve, allow_head=False),
            web.delete("/connections/{conn_id}", connections_remove),
        ]
    )


def post_process_routes(app: web.Application):
    """Describe the connection tag in the OpenAPI document."""
    app._state["swagger_dict"].setdefault("tags", []).append(
        {
            "name": "connection",
            "description": "Connections established from invitations",
        }
    )
