"""The admin HTTP server for the wallets of this process."""

import logging
from hmac import compare_digest
from typing import Coroutine, Sequence

import aiohttp_cors
from aiohttp import web
from aiohttp_apispec import (
    docs,
    response_schema,
    setup_aiohttp_apispec,
    validation_middleware,
)
from marshmallow import fields

from ..config.injection_context import InjectionContext
from ..config.logging import context_wallet_id
from ..messaging.models.openapi import OpenAPISchema
from ..multitenant.manager import MultitenantManagerError, WalletProfileManager
from ..utils.classloader import ClassLoader
from ..version import __version__
from .error import AdminSetupError
from .request_context import AdminRequestContext

LOGGER = logging.getLogger(__name__)

WALLET_ID_HEADER = "X-Wallet-Id"
API_KEY_HEADER = "X-API-KEY"

# Modules exposing `register(app)` and optionally `post_process_routes(app)`
ROUTE_MODULES = (
    "oob_wallet.protocols.out_of_band.v2_0.routes",
    "oob_wallet.pinning.routes",
    "oob_wallet.connections.routes",
)

HEALTH_PATHS = ("/status/live", "/status/ready")
UNPROTECTED_PATHS = HEALTH_PATHS + (
    "/api/doc",
    "/api/docs/swagger.json",
    "/favicon.ico",
)


class AdminStatusSchema(OpenAPISchema):
    """Server status."""

    version = fields.Str(metadata={"description": "Version code"})
    label = fields.Str(allow_none=True, metadata={"description": "Default label"})
    wallets = fields.List(
        fields.Str(), metadata={"description": "Wallets opened by this process"}
    )


class AdminStatusLivelinessSchema(OpenAPISchema):
    """Liveness flag."""

    alive = fields.Bool(metadata={"description": "Liveliness status", "example": True})


class AdminStatusReadinessSchema(OpenAPISchema):
    """Readiness flag."""

    ready = fields.Bool(metadata={"description": "Readiness status", "example": True})


@web.middleware
async def ready_middleware(request: web.BaseRequest, handler: Coroutine):
    """Refuse work while the server is starting or shutting down."""
    path = str(request.rel_url).rstrip("/")
    if path in HEALTH_PATHS or request.app._state.get("ready"):
        return await handler(request)
    raise web.HTTPServiceUnavailable(reason="Shutdown in progress")


@web.middleware
async def debug_middleware(request: web.BaseRequest, handler: Coroutine):
    if LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug("Admin request: %s %s", request.method, request.path_qs)
        LOGGER.debug("Matched: %s", request.match_info)
    return await handler(request)


def const_compare(string1, string2):
    """Compare two secrets without leaking where they differ."""
    if string1 is None or string2 is None:
        return False
    return compare_digest(string1.encode(), string2.encode())


def is_unprotected_path(path: str) -> bool:
    """Whether the path is served without an API key or wallet."""
    return path in UNPROTECTED_PATHS or path.startswith("/static/swagger/")


class AdminServer:
    """
    Serves the admin API for every wallet of the process.

    Each request names its wallet in the `X-Wallet-Id` header; requests
    without one act on the default wallet. The matching profile is opened
    on demand and handed to the route as an `AdminRequestContext`.
    """

    def __init__(
        self,
        host: str,
        port: int,
        context: InjectionContext,
        wallet_manager: WalletProfileManager,
        route_modules: Sequence[str] = ROUTE_MODULES,
    ):
        """Initialize an AdminServer instance."""
        self.app = None
        self.site = None
        self.host = host
        self.port = port
        self.context = context
        self.wallet_manager = wallet_manager
        self.route_modules = route_modules
        settings = context.settings
        self.admin_api_key = settings.get_str("admin.admin_api_key")
        self.admin_insecure_mode = bool(settings.get_bool("admin.admin_insecure_mode"))

    def _api_key_middleware(self):
        @web.middleware
        async def check_api_key(request: web.Request, handler):
            supplied = request.headers.get("x-api-key")
            # CORS preflight requests never carry the key
            if (
                const_compare(self.admin_api_key, supplied)
                or is_unprotected_path(request.path)
                or request.method == "OPTIONS"
            ):
                return await handler(request)
            raise web.HTTPUnauthorized()

        return check_api_key

    def _wallet_middleware(self):
        @web.middleware
        async def bind_wallet(request: web.Request, handler):
            if is_unprotected_path(request.path):
                return await handler(request)

            requested = request.headers.get(WALLET_ID_HEADER)
            try:
                profile = await self.wallet_manager.get_wallet_profile(requested)
            except MultitenantManagerError as err:
                raise web.HTTPBadRequest(reason=err.roll_up) from err

            wallet_id = requested or self.wallet_manager.default_wallet_id
            token = context_wallet_id.set(wallet_id)
            try:
                request["context"] = AdminRequestContext(profile, wallet_id=wallet_id)
                return await handler(request)
            finally:
                context_wallet_id.reset(token)

        return bind_wallet

    async def make_application(self) -> web.Application:
        """
        Build the aiohttp application.

        Raises:
            AdminSetupError: Unless exactly one of an API key or insecure
                mode is configured

        """
        if self.admin_insecure_mode == bool(self.admin_api_key):
            raise AdminSetupError(
                "Exactly one of admin API key or insecure mode must be configured"
            )

        middlewares = [ready_middleware, debug_middleware, validation_middleware]
        if self.admin_api_key:
            middlewares.append(self._api_key_middleware())
        middlewares.append(self._wallet_middleware())

        max_size_mb = self.context.settings.get_int(
            "admin.admin_client_max_request_size", default=1
        )
        app = web.Application(
            middlewares=middlewares, client_max_size=max_size_mb * 1024 * 1024
        )
        app.add_routes(
            [
                web.get("/", self.redirect_handler, allow_head=True),
                web.get("/status", self.status_handler, allow_head=False),
                web.get("/status/live", self.liveliness_handler, allow_head=False),
                web.get("/status/ready", self.readiness_handler, allow_head=False),
            ]
        )
        for module_path in self.route_modules:
            await ClassLoader.load_module(module_path).register(app)

        cors = aiohttp_cors.setup(
            app,
            defaults={
                "*": aiohttp_cors.ResourceOptions(
                    allow_credentials=True,
                    expose_headers="*",
                    allow_headers="*",
                    allow_methods="*",
                )
            },
        )
        for route in app.router.routes():
            cors.add(route)

        setup_aiohttp_apispec(
            app=app,
            title=self.context.settings.get_str("default_label"),
            version=f"v{__version__}",
            swagger_path="/api/doc",
        )
        app.on_startup.append(self.on_startup)

        app._state["ready"] = False
        app._state["alive"] = False
        return app

    async def start(self) -> None:
        """
        Build the application and listen on the configured address.

        Raises:
            AdminSetupError: If the address cannot be bound

        """
        self.app = await self.make_application()
        runner = web.AppRunner(self.app)
        await runner.setup()

        for module_path in self.route_modules:
            post_process = getattr(
                ClassLoader.load_module(module_path), "post_process_routes", None
            )
            if post_process:
                post_process(self.app)
        self.app._state["swagger_dict"].get("tags", []).sort(key=lambda t: t["name"])

        self.site = web.TCPSite(runner, host=self.host, port=self.port)
        try:
            await self.site.start()
        except OSError as err:
            raise AdminSetupError(
                f"Unable to start admin server on {self.host}:{self.port}"
            ) from err
        self.app._state["ready"] = True
        self.app._state["alive"] = True
        LOGGER.info("Admin server listening on %s:%s", self.host, self.port)

    async def stop(self) -> None:
        if self.app:
            self.app._state["ready"] = False
        if self.site:
            await self.site.stop()
            self.site = None

    async def on_startup(self, app: web.Application):
        """Describe the wallet header and API key in the OpenAPI document."""
        definitions = {
            "WalletIdHeader": {
                "type": "apiKey",
                "in": "header",
                "name": WALLET_ID_HEADER,
                "description": "Wallet to act on; the default wallet if omitted",
            }
        }
        swagger = app["swagger_dict"]
        if self.admin_api_key:
            definitions["ApiKeyHeader"] = {
                "type": "apiKey",
                "in": "header",
                "name": API_KEY_HEADER,
            }
            swagger["security"] = [{"ApiKeyHeader": []}]
        swagger["securityDefinitions"] = definitions

    async def redirect_handler(self, request: web.BaseRequest):
        raise web.HTTPFound("/api/doc")

    @docs(tags=["server"], summary="Fetch the server status")
    @response_schema(AdminStatusSchema(), 200, description="")
    async def status_handler(self, request: web.BaseRequest):
        """Report the version, default label and open wallets."""
        return web.json_response(
            {
                "version": __version__,
                "label": self.context.settings.get_str("default_label"),
                "wallets": sorted(self.wallet_manager.wallet_ids),
            }
        )

    @docs(tags=["server"], summary="Liveliness check")
    @response_schema(AdminStatusLivelinessSchema(), 200, description="")
    async def liveliness_handler(self, request: web.BaseRequest):
        if not self.app._state["alive"]:
            raise web.HTTPServiceUnavailable(reason="Service not available")
        return web.json_response({"alive": True})

    @docs(tags=["server"], summary="Readiness check")
    @response_schema(AdminStatusReadinessSchema(), 200, description="")
    async def readiness_handler(self, request: web.BaseRequest):
        if not (self.app._state["ready"] and self.app._state["alive"]):
            raise web.HTTPServiceUnavailable(reason="Service not ready")
        return web.json_response({"ready": True})
