from unittest import IsolatedAsyncioTestCase

import pytest
from aiohttp import ClientSession, DummyCookieJar, TCPConnector
from aiohttp.test_utils import unused_port

from ...config.default_context import DefaultContextBuilder
from ...multitenant.manager import WalletProfileManager
from ...protocols.out_of_band.v2_0.tests import invitation_payload, to_url
from ...tests import mock
from ...version import __version__
from .. import server as test_module
from ..server import AdminServer, AdminSetupError

API_KEY = "test-admin-key"


@pytest.mark.filterwarnings(
    "ignore:It is recommended to use web.AppKey instances for keys.",
)
class TestAdminServer(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.port = unused_port()
        self.server = None
        self.connector = TCPConnector(limit=16, limit_per_host=4)
        self.client_session = ClientSession(
            cookie_jar=DummyCookieJar(), connector=self.connector
        )

    async def asyncTearDown(self):
        if self.server:
            await self.server.stop()
            await self.server.wallet_manager.close_all()
        await self.client_session.close()

    async def get_admin_server(self, settings: dict = None) -> AdminServer:
        builder = DefaultContextBuilder(
            settings={
                "wallet.type": "in_memory",
                "admin.admin_insecure_mode": True,
                **(settings or {}),
            }
        )
        context = await builder.build_context()
        self.server = AdminServer(
            "127.0.0.1", self.port, context, WalletProfileManager(context)
        )
        return self.server

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    async def test_debug_middleware(self):
        with mock.patch.object(test_module, "LOGGER", mock.MagicMock()) as mock_logger:
            mock_logger.isEnabledFor = mock.MagicMock(return_value=True)
            request = mock.MagicMock(
                method="GET",
                path_qs="/hello/world?a=1&b=2",
                match_info={"match": "info"},
            )
            handler = mock.CoroutineMock()

            await test_module.debug_middleware(request, handler)
            mock_logger.isEnabledFor.assert_called_once()
            assert mock_logger.debug.call_count == 2
            handler.assert_awaited_once_with(request)

    async def test_ready_middleware(self):
        request = mock.MagicMock(
            rel_url="/", app=mock.MagicMock(_state={"ready": False})
        )
        handler = mock.CoroutineMock(return_value="OK")
        with self.assertRaises(test_module.web.HTTPServiceUnavailable):
            await test_module.ready_middleware(request, handler)

        request.app._state["ready"] = True
        assert await test_module.ready_middleware(request, handler) == "OK"

        request = mock.MagicMock(
            rel_url="/status/live/", app=mock.MagicMock(_state={"ready": False})
        )
        assert await test_module.ready_middleware(request, handler) == "OK"

    def test_const_compare(self):
        assert test_module.const_compare("abc", "abc")
        assert not test_module.const_compare("abc", "abd")
        assert not test_module.const_compare("abc", None)

    async def test_setup_requires_one_auth_mode(self):
        server = await self.get_admin_server({"admin.admin_insecure_mode": False})
        with self.assertRaises(AdminSetupError):
            await server.make_application()

        server = await self.get_admin_server({"admin.admin_api_key": API_KEY})
        with self.assertRaises(AdminSetupError):
            await server.make_application()

    async def test_start_stop(self):
        server = await self.get_admin_server()
        await server.start()
        tags = [tag["name"] for tag in server.app._state["swagger_dict"]["tags"]]
        assert tags == sorted(tags)
        assert "out-of-band" in tags

        async with self.client_session.get(self.url("/status/live")) as response:
            assert response.status == 200
            assert await response.json() == {"alive": True}
        async with self.client_session.get(self.url("/status/ready")) as response:
            assert await response.json() == {"ready": True}
        async with self.client_session.get(self.url("/status")) as response:
            result = await response.json()
        assert result["version"] == __version__
        assert result["label"] == "OOB Wallet"

        await server.stop()
        self.server = None

    async def test_start_port_in_use(self):
        first = await self.get_admin_server()
        await first.start()
        second = await self.get_admin_server()
        self.server = first
        with self.assertRaises(AdminSetupError):
            await second.start()

    async def test_api_key(self):
        server = await self.get_admin_server(
            {"admin.admin_insecure_mode": False, "admin.admin_api_key": API_KEY}
        )
        await server.start()

        async with self.client_session.get(self.url("/status")) as response:
            assert response.status == 401
        async with self.client_session.get(
            self.url("/status"), headers={"x-api-key": "wrong"}
        ) as response:
            assert response.status == 401
        async with self.client_session.get(
            self.url("/status"), headers={"x-api-key": API_KEY}
        ) as response:
            assert response.status == 200
        async with self.client_session.get(self.url("/status/live")) as response:
            assert response.status == 200

    async def test_wallet_header_selects_profile(self):
        await (await self.get_admin_server()).start()

        async with self.client_session.post(
            self.url("/out-of-band/receive-invitation"),
            json={"invitation": to_url(invitation_payload())},
            headers={"X-Wallet-Id": "alice"},
        ) as response:
            assert response.status == 200
            preview = await response.json()
        assert preview["kind"] == "edge"

        async def count(wallet_id=None):
            headers = {"X-Wallet-Id": wallet_id} if wallet_id else {}
            async with self.client_session.get(
                self.url("/out-of-band/invitations"), headers=headers
            ) as response:
                assert response.status == 200
                return len((await response.json())["results"])

        assert await count("alice") == 1
        assert await count("bob") == 0
        assert await count() == 0

        async with self.client_session.get(self.url("/status")) as response:
            wallets = (await response.json())["wallets"]
        assert wallets == ["alice", "bob", "default"]

        async with self.client_session.get(
            self.url("/out-of-band/invitations"), headers={"X-Wallet-Id": "../x"}
        ) as response:
            assert response.status == 400

    async def test_not_found_maps_to_404(self):
        await (await self.get_admin_server()).start()
        async with self.client_session.get(
            self.url("/out-of-band/invitations/missing")
        ) as response:
            assert response.status == 404
        async with self.client_session.get(
            self.url("/identity-pins/ca")
        ) as response:
            assert response.status == 404
