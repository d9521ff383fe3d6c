from unittest import IsolatedAsyncioTestCase

from .....admin.request_context import AdminRequestContext
from .....core.event_bus import EventBus, MockEventBus
from .....core.in_memory import InMemoryProfile
from .....messaging.responder import BaseResponder, MockResponder
from .....pinning.manager import IdentityPinMismatchError
from .....storage.error import StorageNotFoundError
from .....tests import mock
from .. import routes as test_module
from ..manager import OutOfBandManager, OutOfBandManagerError
from ..messages.connection_request import (
    ConnectionRequestBody,
    ConnectionRequestMessage,
)
from ..supervisor import ParseSupersededError
from . import invitation_payload, to_url


class TestOutOfBandRoutes(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.profile = InMemoryProfile.test_profile(
            bind={EventBus: MockEventBus(), BaseResponder: MockResponder()}
        )
        self.context = AdminRequestContext.test_context(profile=self.profile)
        self.request_dict = {"context": self.context}
        self.request = mock.MagicMock(
            app={},
            match_info={},
            query={},
            body_exists=True,
            __getitem__=lambda _, k: self.request_dict[k],
        )

    async def test_invitation_create(self):
        self.request.json = mock.CoroutineMock(
            return_value={"goal_code": "issue-vc", "label": "Issuer"}
        )
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.invitation_create(self.request)
            result = mock_json_response.call_args[0][0]
        assert result["invitation"]["body"]["goal_code"] == "issue-vc"
        assert result["invitation_url"].startswith("?_oob=")
        assert result["record"]["state"] == "invitation-generated"

    async def test_invitation_create_no_body(self):
        self.request.body_exists = False
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.invitation_create(self.request)
            result = mock_json_response.call_args[0][0]
        assert result["invitation"]["body"]["goal_code"] == "connect"

    async def test_invitation_create_bad_credential(self):
        self.request.json = mock.CoroutineMock(
            return_value={"attach_credential": "not a credential"}
        )
        with self.assertRaises(test_module.web.HTTPBadRequest):
            await test_module.invitation_create(self.request)

    async def test_invitation_receive_and_list(self):
        self.request.json = mock.CoroutineMock(
            return_value={"invitation": to_url(invitation_payload())}
        )
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.invitation_receive(self.request)
            preview = mock_json_response.call_args[0][0]
            assert preview["kind"] == "edge"
            assert preview["record"]["state"] == "invitation-previewed"

            self.request.query = {"role": "invitee"}
            await test_module.invitation_list(self.request)
            listed = mock_json_response.call_args[0][0]
            assert [r["invitation_id"] for r in listed["results"]] == [
                invitation_payload()["id"]
            ]

            await test_module.invitation_stats(self.request)
            stats = mock_json_response.call_args[0][0]
            assert stats["invitation-previewed"] == 1
            assert stats["total"] == 1

    async def test_invitation_receive_without_preview(self):
        self.request.query = {"auto_preview": "false"}
        self.request.json = mock.CoroutineMock(
            return_value={"invitation": to_url(invitation_payload())}
        )
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.invitation_receive(self.request)
            preview = mock_json_response.call_args[0][0]
        assert preview["record"]["state"] == "invitation-received"

    async def test_invitation_receive_errors(self):
        self.request.json = mock.CoroutineMock(return_value={"invitation": "x"})
        for err, http_err in (
            (
                IdentityPinMismatchError("ca", "did:peer:a", "did:peer:b"),
                test_module.web.HTTPConflict,
            ),
            (ParseSupersededError(), test_module.web.HTTPConflict),
            (OutOfBandManagerError("bad"), test_module.web.HTTPBadRequest),
        ):
            with mock.patch.object(
                test_module, "OutOfBandManager", autospec=True
            ) as mock_oob_mgr:
                mock_oob_mgr.return_value.receive_invitation = mock.CoroutineMock(
                    side_effect=err
                )
                with self.assertRaises(http_err):
                    await test_module.invitation_receive(self.request)

    async def test_invitation_accept(self):
        self.request.json = mock.CoroutineMock(
            return_value={"invitation": "did:peer:abc123", "alias": "Dave"}
        )
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.invitation_accept(self.request)
            conn = mock_json_response.call_args[0][0]
        assert conn["their_did"] == "did:peer:abc123"
        assert conn["their_label"] == "Dave"

    async def test_invitation_accept_refused(self):
        self.request.json = mock.CoroutineMock(
            return_value={"invitation": "did:peer:abc123"}
        )
        with self.assertRaises(test_module.web.HTTPBadRequest):
            await test_module.invitation_accept(self.request)

    async def test_invitation_retrieve_and_reject(self):
        await OutOfBandManager(self.profile).receive_invitation(
            to_url(invitation_payload())
        )
        self.request.match_info = {"invitation_id": invitation_payload()["id"]}
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.invitation_retrieve(self.request)
            assert mock_json_response.call_args[0][0]["label"] == "Alice"

            await test_module.invitation_reject(self.request)
            record = mock_json_response.call_args[0][0]
            assert record["state"] == "invitation-rejected"

            await test_module.invitation_clear(self.request)
            mock_json_response.assert_called_with({"removed": 1})

    async def test_invitation_not_found(self):
        self.request.match_info = {"invitation_id": "missing"}
        with self.assertRaises(test_module.web.HTTPNotFound):
            await test_module.invitation_retrieve(self.request)
        with self.assertRaises(test_module.web.HTTPNotFound):
            await test_module.invitation_reject(self.request)

    async def test_current_and_clear_preview(self):
        with self.assertRaises(test_module.web.HTTPNotFound):
            await test_module.invitation_current_preview(self.request)

        self.request.json = mock.CoroutineMock(
            return_value={"invitation": to_url(invitation_payload())}
        )
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.invitation_receive(self.request)
            await test_module.invitation_current_preview(self.request)
            current = mock_json_response.call_args[0][0]
            assert current["invitation_id"] == invitation_payload()["id"]

            await test_module.invitation_clear_preview(self.request)
            mock_json_response.assert_called_with({"cleared": True})

        with self.assertRaises(test_module.web.HTTPNotFound):
            await test_module.invitation_current_preview(self.request)


class TestConnectionRequestRoutes(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.profile = InMemoryProfile.test_profile(bind={EventBus: MockEventBus()})
        self.context = AdminRequestContext.test_context(profile=self.profile)
        self.request_dict = {"context": self.context}
        self.request = mock.MagicMock(
            app={},
            match_info={},
            query={},
            __getitem__=lambda _, k: self.request_dict[k],
        )
        self.created = await OutOfBandManager(self.profile).create_invitation()

    def message(self, label="acme-corp") -> dict:
        return ConnectionRequestMessage(
            from_did="did:peer:acme",
            to=[self.created.invitation.from_did],
            thid=self.created.invitation.id,
            body=ConnectionRequestBody(label=label),
        ).serialize()

    async def receive(self, message: dict) -> dict:
        self.request.json = mock.CoroutineMock(return_value=message)
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.connection_request_receive(self.request)
            return mock_json_response.call_args[0][0]

    async def test_receive_collapses_duplicates(self):
        first = await self.receive(self.message())
        assert not first["duplicate"]
        assert first["request"]["state"] == "pending"
        second = await self.receive(self.message())
        assert second == {"duplicate": True, "request": None}

        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.connection_request_list(self.request)
            listed = mock_json_response.call_args[0][0]
            assert len(listed["results"]) == 1

            await test_module.connection_request_stats(self.request)
            stats = mock_json_response.call_args[0][0]
            assert stats["pending"] == 1

    async def test_receive_malformed(self):
        self.request.json = mock.CoroutineMock(return_value={"body": "{broken"})
        with self.assertRaises(test_module.web.HTTPBadRequest):
            await test_module.connection_request_receive(self.request)

    async def test_accept(self):
        received = await self.receive(self.message())
        self.request.match_info = {"request_id": received["request"]["request_id"]}
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.connection_request_accept(self.request)
            conn = mock_json_response.call_args[0][0]
            assert conn["their_did"] == "did:peer:acme"
            assert conn["their_label"] == "acme-corp"

            await test_module.connection_request_retrieve(self.request)
            item = mock_json_response.call_args[0][0]
            assert item["state"] == "accepted"

    async def test_reject_then_accept(self):
        received = await self.receive(self.message())
        self.request.match_info = {"request_id": received["request"]["request_id"]}
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.connection_request_reject(self.request)
            assert mock_json_response.call_args[0][0]["state"] == "rejected"
        with self.assertRaises(test_module.web.HTTPBadRequest):
            await test_module.connection_request_accept(self.request)

    async def test_missing_request(self):
        self.request.match_info = {"request_id": "missing"}
        with self.assertRaises(test_module.web.HTTPNotFound):
            await test_module.connection_request_retrieve(self.request)
        with self.assertRaises(test_module.web.HTTPNotFound):
            await test_module.connection_request_accept(self.request)

    async def test_maintenance(self):
        with mock.patch.object(
            test_module.web, "json_response", mock.Mock()
        ) as mock_json_response:
            await test_module.connection_request_deduplicate(self.request)
            mock_json_response.assert_called_with({"removed": 0})
            await test_module.connection_request_cleanup(self.request)
            mock_json_response.assert_called_with({"removed": 0})

    async def test_storage_error_is_bad_request(self):
        with mock.patch.object(
            test_module, "OutOfBandManager", autospec=True
        ) as mock_oob_mgr:
            mock_oob_mgr.return_value.queue = mock.MagicMock(
                stats=mock.CoroutineMock(side_effect=StorageNotFoundError("gone"))
            )
            with self.assertRaises(test_module.web.HTTPNotFound):
                await test_module.connection_request_stats(self.request)


class TestRegistration(IsolatedAsyncioTestCase):
    async def test_register(self):
        mock_app = mock.MagicMock()
        mock_app.add_routes = mock.MagicMock()

        await test_module.register(mock_app)
        mock_app.add_routes.assert_called_once()

    async def test_post_process_routes(self):
        mock_app = mock.MagicMock(_state={"swagger_dict": {}})
        test_module.post_process_routes(mock_app)
        assert [t["name"] for t in mock_app._state["swagger_dict"]["tags"]] == [
            "out-of-band",
            "connection-requests",
        ]
