"""Out-of-band invitation and connection request admin routes."""

import logging

from aiohttp import web
from aiohttp_apispec import (
    docs,
    match_info_schema,
    querystring_schema,
    request_schema,
    response_schema,
)
from marshmallow import fields

from ....admin.request_context import AdminRequestContext
from ....connections.models.conn_record import ConnRecordSchema
from ....core.error import BaseError
from ....messaging.models.openapi import OpenAPISchema
from ....messaging.valid import (
    GENERIC_DID_EXAMPLE,
    UUID4_EXAMPLE,
    one_of,
)
from ....pinning.manager import IdentityPinMismatchError
from ....storage.error import StorageNotFoundError
from .manager import GOAL_CONNECT, InvitationPreviewSchema, OutOfBandManager
from .message_types import GOAL_CODES, SPEC_URI
from .messages.invitation import InvitationMessageSchema
from .models.connection_request import (
    ConnectionRequestItem,
    ConnectionRequestItemSchema,
)
from .models.invitation_record import InvitationRecord, InvitationRecordSchema
from .supervisor import ParseSupersededError

LOGGER = logging.getLogger(__name__)


def _http_error(err: BaseError) -> web.HTTPException:
    """Translate an engine error into the matching HTTP error."""
    if isinstance(err, StorageNotFoundError):
        return web.HTTPNotFound(reason=err.roll_up)
    if isinstance(err, (IdentityPinMismatchError, ParseSupersededError)):
        return web.HTTPConflict(reason=err.roll_up)
    return web.HTTPBadRequest(reason=err.roll_up)


class InvitationCreateRequestSchema(OpenAPISchema):
    """Invitation create request schema."""

    goal_code = fields.Str(
        required=False,
        validate=one_of(GOAL_CODES),
        metadata={
            "description": "Goal code of the invitation",
            "example": GOAL_CONNECT,
        },
    )
    goal = fields.Str(
        required=False,
        metadata={
            "description": "Human readable goal",
            "example": "To connect and exchange credentials",
        },
    )
    label = fields.Str(
        required=False,
        metadata={"description": "Label shown to the invitee", "example": "Alice"},
    )
    attach_credential = fields.Raw(
        required=False,
        metadata={
            "description": (
                "Credential to present to the invitee: a JSON credential, a"
                " compact JWT or an SDK credential envelope"
            )
        },
    )
    request_presentation = fields.Bool(
        required=False,
        metadata={
            "description": "Ask the invitee for a RealPerson presentation",
            "example": False,
        },
    )
    base_url = fields.Str(
        required=False,
        metadata={
            "description": "Base of the invitation URL",
            "example": "https://example.com/",
        },
    )


class InvitationCreateResultSchema(OpenAPISchema):
    """Result schema for a newly created invitation."""

    invitation = fields.Nested(InvitationMessageSchema(), required=True)
    invitation_url = fields.Str(
        required=True,
        metadata={
            "description": "Invitation URL",
            "example": "https://example.com/?_oob=eyJ0eXBlIjoi...",
        },
    )
    record = fields.Nested(InvitationRecordSchema(), required=False)


class InvitationTextSchema(OpenAPISchema):
    """Request schema carrying an invitation as received."""

    invitation = fields.Str(
        required=True,
        metadata={
            "description": "Invitation URL, encoded payload or bare peer DID",
            "example": "https://example.com/?_oob=eyJ0eXBlIjoi...",
        },
    )


class InvitationReceiveQueryStringSchema(OpenAPISchema):
    """Parameters for receiving an invitation."""

    auto_preview = fields.Bool(
        required=False,
        metadata={"description": "Mark the invitation previewed (default true)"},
    )


class InvitationAcceptRequestSchema(InvitationTextSchema):
    """Request schema for accepting an invitation."""

    alias = fields.Str(
        required=False,
        metadata={"description": "Label for the new connection", "example": "Barry"},
    )
    credential = fields.Raw(
        required=False,
        metadata={"description": "Credential to present to the inviter"},
    )


class InvitationListQueryStringSchema(OpenAPISchema):
    """Parameters for listing invitation records."""

    state = fields.Str(
        required=False,
        validate=one_of(InvitationRecord.STATES),
        metadata={
            "description": "Invitation state",
            "example": InvitationRecord.STATE_GENERATED,
        },
    )
    role = fields.Str(
        required=False,
        validate=one_of(
            (InvitationRecord.ROLE_INVITER, InvitationRecord.ROLE_INVITEE)
        ),
        metadata={
            "description": "Our role in the invitation",
            "example": InvitationRecord.ROLE_INVITER,
        },
    )


class InvitationListSchema(OpenAPISchema):
    """Result schema for an invitation record list."""

    results = fields.List(
        fields.Nested(InvitationRecordSchema()),
        metadata={"description": "Invitation records"},
    )


class CountsSchema(OpenAPISchema):
    """Counts per state, plus a total."""

    total = fields.Int(required=True, metadata={"example": 3})


class RemovedCountSchema(OpenAPISchema):
    """Result schema for maintenance operations."""

    removed = fields.Int(
        required=True,
        metadata={"description": "Number of records removed", "example": 1},
    )


class InvitationIdMatchInfoSchema(OpenAPISchema):
    """Path parameters for requests on one invitation."""

    invitation_id = fields.Str(
        required=True,
        metadata={"description": "Invitation identifier", "example": UUID4_EXAMPLE},
    )


class ConnectionRequestListQueryStringSchema(OpenAPISchema):
    """Parameters for listing connection requests."""

    state = fields.Str(
        required=False,
        validate=one_of(ConnectionRequestItem.STATES),
        metadata={
            "description": "Request state",
            "example": ConnectionRequestItem.STATE_PENDING,
        },
    )


class ConnectionRequestListSchema(OpenAPISchema):
    """Result schema for a connection request list."""

    results = fields.List(
        fields.Nested(ConnectionRequestItemSchema()),
        metadata={"description": "Connection requests"},
    )


class ConnectionRequestReceiveResultSchema(OpenAPISchema):
    """Result schema for a received connection request."""

    duplicate = fields.Bool(
        required=True,
        metadata={"description": "The request repeated one already handled"},
    )
    request = fields.Nested(ConnectionRequestItemSchema(), required=False)


class RequestIdMatchInfoSchema(OpenAPISchema):
    """Path parameters for requests on one connection request."""

    request_id = fields.Str(
        required=True,
        metadata={
            "description": "Connection request identifier",
            "example": UUID4_EXAMPLE,
        },
    )


class ClearPreviewResultSchema(OpenAPISchema):
    """Result schema for clearing the current preview."""

    cleared = fields.Bool(
        required=True,
        metadata={"description": "False when a parse was running and it was kept"},
    )


class ConnectionRequestMessageSchema(OpenAPISchema):
    """Request schema for an inbound connection request message."""

    id = fields.Str(required=True, metadata={"example": UUID4_EXAMPLE})
    type = fields.Str(required=False)
    _from = fields.Str(
        data_key="from", required=True, metadata={"example": GENERIC_DID_EXAMPLE}
    )
    to = fields.List(fields.Str(), required=False)
    thid = fields.Str(required=False, metadata={"example": UUID4_EXAMPLE})
    body = fields.Dict(required=True)
    attachments = fields.List(fields.Dict(), required=False)


@docs(tags=["out-of-band"], summary="Create a new out-of-band invitation")
@request_schema(InvitationCreateRequestSchema())
@response_schema(InvitationCreateResultSchema(), 200, description="")
async def invitation_create(request: web.BaseRequest):
    """
    Request handler for creating a new out-of-band invitation.

    Args:
        request: aiohttp request object

    Returns:
        The invitation, its URL and its ledger record

    """
    context: AdminRequestContext = request["context"]
    body = await request.json() if request.body_exists else {}

    oob_mgr = OutOfBandManager(context.profile)
    try:
        created = await oob_mgr.create_invitation(
            body.get("goal_code") or GOAL_CONNECT,
            goal=body.get("goal"),
            label=body.get("label"),
            attach_credential=body.get("attach_credential"),
            request_presentation=bool(body.get("request_presentation")),
            base_url=body.get("base_url"),
        )
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(
        {
            "invitation": created.invitation.serialize(),
            "invitation_url": created.invitation_url,
            "record": created.record.serialize() if created.record else None,
        }
    )


@docs(tags=["out-of-band"], summary="Receive and preview an invitation")
@querystring_schema(InvitationReceiveQueryStringSchema())
@request_schema(InvitationTextSchema())
@response_schema(InvitationPreviewSchema(), 200, description="")
async def invitation_receive(request: web.BaseRequest):
    """
    Request handler for receiving an invitation.

    Args:
        request: aiohttp request object

    Returns:
        The invitation preview

    """
    context: AdminRequestContext = request["context"]
    body = await request.json()
    auto_preview = request.query.get("auto_preview", "true").lower() != "false"

    oob_mgr = OutOfBandManager(context.profile)
    try:
        preview = await oob_mgr.receive_invitation(
            body.get("invitation", ""), auto_preview=auto_preview
        )
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(preview.serialize())


@docs(tags=["out-of-band"], summary="Fetch the current invitation preview")
@response_schema(InvitationPreviewSchema(), 200, description="")
async def invitation_current_preview(request: web.BaseRequest):
    """Request handler for the preview of the invitation received last."""
    context: AdminRequestContext = request["context"]
    preview = OutOfBandManager(context.profile).current_preview
    if preview is None:
        raise web.HTTPNotFound(reason="No invitation preview")
    return web.json_response(preview.serialize())


@docs(tags=["out-of-band"], summary="Clear the current invitation preview")
@response_schema(ClearPreviewResultSchema(), 200, description="")
async def invitation_clear_preview(request: web.BaseRequest):
    """Request handler for dropping the current preview."""
    context: AdminRequestContext = request["context"]
    cleared = OutOfBandManager(context.profile).clear_preview()
    return web.json_response({"cleared": cleared})


@docs(tags=["out-of-band"], summary="Accept an invitation and connect")
@request_schema(InvitationAcceptRequestSchema())
@response_schema(ConnRecordSchema(), 200, description="")
async def invitation_accept(request: web.BaseRequest):
    """
    Request handler for accepting an invitation.

    Args:
        request: aiohttp request object

    Returns:
        The connection record

    """
    context: AdminRequestContext = request["context"]
    body = await request.json()

    oob_mgr = OutOfBandManager(context.profile)
    try:
        conn = await oob_mgr.accept_invitation(
            body.get("invitation", ""),
            alias=body.get("alias"),
            credential=body.get("credential"),
        )
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(conn.serialize())


@docs(tags=["out-of-band"], summary="Query invitation records")
@querystring_schema(InvitationListQueryStringSchema())
@response_schema(InvitationListSchema(), 200, description="")
async def invitation_list(request: web.BaseRequest):
    """Request handler for listing invitation records."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        records = await oob_mgr.ledger.list_records(
            state=request.query.get("state"), role=request.query.get("role")
        )
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response({"results": [record.serialize() for record in records]})


@docs(tags=["out-of-band"], summary="Count invitation records per state")
@response_schema(CountsSchema(), 200, description="")
async def invitation_stats(request: web.BaseRequest):
    """Request handler for invitation record statistics."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        counts = await oob_mgr.ledger.stats()
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(counts)


@docs(tags=["out-of-band"], summary="Fetch one invitation record")
@match_info_schema(InvitationIdMatchInfoSchema())
@response_schema(InvitationRecordSchema(), 200, description="")
async def invitation_retrieve(request: web.BaseRequest):
    """Request handler for fetching an invitation record."""
    context: AdminRequestContext = request["context"]
    invitation_id = request.match_info["invitation_id"]
    try:
        async with context.session() as session:
            record = await InvitationRecord.retrieve_by_invitation_id(
                session, invitation_id
            )
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(record.serialize())


@docs(tags=["out-of-band"], summary="Decline a received invitation")
@match_info_schema(InvitationIdMatchInfoSchema())
@response_schema(InvitationRecordSchema(), 200, description="")
async def invitation_reject(request: web.BaseRequest):
    """Request handler for declining a received invitation."""
    context: AdminRequestContext = request["context"]
    invitation_id = request.match_info["invitation_id"]

    oob_mgr = OutOfBandManager(context.profile)
    try:
        record = await oob_mgr.reject_invitation(invitation_id)
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(record.serialize() if record else {})


@docs(tags=["out-of-band"], summary="Delete finished invitation records")
@response_schema(RemovedCountSchema(), 200, description="")
async def invitation_clear(request: web.BaseRequest):
    """Request handler for deleting invitation records in a terminal state."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        removed = await oob_mgr.ledger.clear_terminal()
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response({"removed": removed})


@docs(tags=["connection-requests"], summary="Query queued connection requests")
@querystring_schema(ConnectionRequestListQueryStringSchema())
@response_schema(ConnectionRequestListSchema(), 200, description="")
async def connection_request_list(request: web.BaseRequest):
    """Request handler for listing queued connection requests."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        items = await oob_mgr.queue.list_requests(request.query.get("state"))
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response({"results": [item.serialize() for item in items]})


@docs(tags=["connection-requests"], summary="Receive an inbound connection request")
@request_schema(ConnectionRequestMessageSchema())
@response_schema(ConnectionRequestReceiveResultSchema(), 200, description="")
async def connection_request_receive(request: web.BaseRequest):
    """
    Request handler for an inbound connection request message.

    A transport plugin posts each decrypted connection request here; the
    request is queued until the user accepts or rejects it.
    """
    context: AdminRequestContext = request["context"]
    body = await request.json()

    oob_mgr = OutOfBandManager(context.profile)
    try:
        item = await oob_mgr.receive_connection_request(body)
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(
        {"duplicate": item is None, "request": item.serialize() if item else None}
    )


@docs(tags=["connection-requests"], summary="Fetch one connection request")
@match_info_schema(RequestIdMatchInfoSchema())
@response_schema(ConnectionRequestItemSchema(), 200, description="")
async def connection_request_retrieve(request: web.BaseRequest):
    """Request handler for fetching a queued connection request."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        item = await oob_mgr.queue.get_request(request.match_info["request_id"])
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(item.serialize())


@docs(tags=["connection-requests"], summary="Accept a connection request")
@match_info_schema(RequestIdMatchInfoSchema())
@response_schema(ConnRecordSchema(), 200, description="")
async def connection_request_accept(request: web.BaseRequest):
    """Request handler for accepting a queued connection request."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        conn = await oob_mgr.accept_connection_request(
            request.match_info["request_id"]
        )
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(conn.serialize())


@docs(tags=["connection-requests"], summary="Reject a connection request")
@match_info_schema(RequestIdMatchInfoSchema())
@response_schema(ConnectionRequestItemSchema(), 200, description="")
async def connection_request_reject(request: web.BaseRequest):
    """Request handler for rejecting a queued connection request."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        item = await oob_mgr.reject_connection_request(
            request.match_info["request_id"]
        )
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(item.serialize())


@docs(tags=["connection-requests"], summary="Remove duplicate connection requests")
@response_schema(RemovedCountSchema(), 200, description="")
async def connection_request_deduplicate(request: web.BaseRequest):
    """Request handler for removing repeated connection requests."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        removed = await oob_mgr.queue.deduplicate()
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response({"removed": removed})


@docs(
    tags=["connection-requests"],
    summary="Remove resolved connection requests past their expiry",
)
@response_schema(RemovedCountSchema(), 200, description="")
async def connection_request_cleanup(request: web.BaseRequest):
    """Request handler for deleting expired resolved connection requests."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        removed = await oob_mgr.queue.cleanup_expired()
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response({"removed": removed})


@docs(tags=["connection-requests"], summary="Count connection requests per state")
@response_schema(CountsSchema(), 200, description="")
async def connection_request_stats(request: web.BaseRequest):
    """Request handler for connection request statistics."""
    context: AdminRequestContext = request["context"]
    oob_mgr = OutOfBandManager(context.profile)
    try:
        counts = await oob_mgr.queue.stats()
    except BaseError as err:
        raise _http_error(err) from err

    return web.json_response(counts)


async def register(app: web.Application):
    """Register routes."""
    app.add_routes(
        [
            web.post("/out-of-band/create-invitation", invitation_create),
            web.post("/out-of-band/receive-invitation", invitation_receive),
            web.post("/out-of-band/accept-invitation", invitation_accept),
            web.get(
                "/out-of-band/preview", invitation_current_preview, allow_head=False
            ),
            web.post("/out-of-band/preview/clear", invitation_clear_preview),
            web.get("/out-of-band/invitations", invitation_list, allow_head=False),
            web.get(
                "/out-of-band/invitations/stats", invitation_stats, allow_head=False
            ),
            web.post("/out-of-band/invitations/clear", invitation_clear),
            web.get(
                "/out-of-band/invitations/{invitation_id}",
                invitation_retrieve,
                allow_head=False,
            ),
            web.post(
                "/out-of-band/invitations/{invitation_id}/reject", invitation_reject
            ),
            web.get(
                "/connection-requests", connection_request_list, allow_head=False
            ),
            web.post("/connection-requests/receive", connection_request_receive),
            web.post(
                "/connection-requests/deduplicate", connection_request_deduplicate
            ),
            web.post("/connection-requests/cleanup", connection_request_cleanup),
            web.get(
                "/connection-requests/stats",
                connection_request_stats,
                allow_head=False,
            ),
            web.get(
                "/connection-requests/{request_id}",
                connection_request_retrieve,
                allow_head=False,
            ),
            web.post(
                "/connection-requests/{request_id}/accept", connection_request_accept
            ),
            web.post(
                "/connection-requests/{request_id}/reject", connection_request_reject
            ),
        ]
    )


def post_process_routes(app: web.Application):
    """Amend swagger API."""

    # Add top-level tags description
    if "tags" not in app._state["swagger_dict"]:
        app._state["swagger_dict"]["tags"] = []
    app._state["swagger_dict"]["tags"].append(
        {
            "name": "out-of-band",
            "description": "Out-of-band invitations",
            "externalDocs": {"description": "Specification", "url": SPEC_URI},
        }
    )
    app._state["swagger_dict"]["tags"].append(
        {
            "name": "connection-requests",
            "description": "Inbound connection requests awaiting a decision",
        }
    )
