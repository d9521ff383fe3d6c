"""Identity pin admin routes."""

from aiohttp import web
from aiohttp_apispec import docs, match_info_schema, querystring_schema, response_schema
from marshmallow import fields

from ..admin.request_context import AdminRequestContext
from ..messaging.models.openapi import OpenAPISchema
from ..messaging.valid import GENERIC_DID_EXAMPLE, GENERIC_DID_VALIDATE, one_of
from ..storage.error import StorageError
from .manager import IdentityPinningStore
from .models.pin_record import PinRecord, PinRecordSchema


class PinListSchema(OpenAPISchema):
    """Result schema for the pin list."""

    results = fields.List(
        fields.Nested(PinRecordSchema()),
        metadata={"description": "Pinned identities"},
    )


class PinCategoryMatchInfoSchema(OpenAPISchema):
    """Path parameters for requests on one trust category."""

    category = fields.Str(
        required=True,
        validate=one_of(PinRecord.CATEGORIES),
        metadata={"description": "Trust category", "example": PinRecord.CATEGORY_CA},
    )


class PinVerifyQueryStringSchema(OpenAPISchema):
    """Parameters for checking a DID against a pin."""

    did = fields.Str(
        required=True,
        validate=GENERIC_DID_VALIDATE,
        metadata={"description": "Presented DID", "example": GENERIC_DID_EXAMPLE},
    )


class PinVerifyResultSchema(OpenAPISchema):
    """Result schema for checking a DID against a pin."""

    matches = fields.Bool(
        required=True,
        metadata={"description": "True if nothing is pinned or the DID matches"},
    )
    pinned = fields.Bool(
        required=True, metadata={"description": "A pin exists for the category"}
    )


def _category(request: web.BaseRequest) -> str:
    category = request.match_info["category"]
    if category not in PinRecord.CATEGORIES:
        raise web.HTTPNotFound(reason=f"Unknown pin category: {category}")
    return category


@docs(tags=["identity-pins"], summary="List pinned identities")
@response_schema(PinListSchema(), 200, description="")
async def pins_list(request: web.BaseRequest):
    """Request handler for listing pinned identities."""
    context: AdminRequestContext = request["context"]
    try:
        pins = await IdentityPinningStore(context.profile).list_pins()
    except StorageError as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err

    return web.json_response({"results": [pin.serialize() for pin in pins]})


@docs(tags=["identity-pins"], summary="Fetch the pin for a trust category")
@match_info_schema(PinCategoryMatchInfoSchema())
@response_schema(PinRecordSchema(), 200, description="")
async def pins_retrieve(request: web.BaseRequest):
    """Request handler for fetching the pin of one category."""
    context: AdminRequestContext = request["context"]
    category = _category(request)
    try:
        pin = await IdentityPinningStore(context.profile).get_pin(category)
    except StorageError as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err

    if not pin:
        raise web.HTTPNotFound(reason=f"No identity pinned for {category}")
    return web.json_response(pin.serialize())


@docs(tags=["identity-pins"], summary="Check a DID against a pinned identity")
@match_info_schema(PinCategoryMatchInfoSchema())
@querystring_schema(PinVerifyQueryStringSchema())
@response_schema(PinVerifyResultSchema(), 200, description="")
async def pins_verify(request: web.BaseRequest):
    """Request handler for comparing a presented DID with a pin."""
    context: AdminRequestContext = request["context"]
    category = _category(request)
    pins = IdentityPinningStore(context.profile)
    try:
        matches = await pins.verify_against_pin(category, request.query["did"])
        pinned = await pins.is_pinned(category)
    except StorageError as err:
        raise web.HTTPBadRequest(reason=err.roll_up) from err

    return web.json_response({"matches": matches, "pinned": pinned})


async def register(app: web.Application):
    """Register routes."""
    app.add_routes(
        [
            web.get("/identity-pins", pins_list, allow_head=False),
            web.get("/identity-pins/{category}", pins_retrieve, allow_head=False),
            web.get(
                "/identity-pins/{category}/verify", pins_verify, allow_head=False
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
            "name": "identity-pins",
            "description": "Trust-on-first-use identity pins",
        }
    )
