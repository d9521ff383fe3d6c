import json
from unittest import TestCase

from .....messaging.decorators.attach_decorator import AttachDecorator
from .....wallet.util import b64_to_bytes, bytes_to_b64
from ..codec import (
    CounterpartyInvitation,
    EdgeInvitation,
    LegacyInvitation,
    RawIdentifier,
    decode,
    encode,
)
from ..message_types import GOAL_ISSUE_VC, INVITATION, LEGACY_INVITATION_TYPES
from . import INVITER_DID, invitation_payload, to_url


class TestEncode(TestCase):
    def test_encode_wire_form(self):
        url = encode(
            GOAL_ISSUE_VC,
            INVITER_DID,
            goal="Get a credential",
            label="Issuer",
            base_url="https://issuer.example/oob",
        )
        assert url.startswith("https://issuer.example/oob?_oob=")
        payload = json.loads(b64_to_bytes(url.split("_oob=")[1], urlsafe=True))
        assert payload["type"] == INVITATION
        assert payload["from"] == INVITER_DID
        assert payload["body"]["goal_code"] == GOAL_ISSUE_VC
        assert payload["body"]["label"] == "Issuer"
        assert "requests_attach" not in payload
        assert payload["id"]

    def test_encode_without_base_url(self):
        url = encode(GOAL_ISSUE_VC, INVITER_DID)
        assert url.startswith("?_oob=")
        decoded = decode(url)
        assert isinstance(decoded, EdgeInvitation)
        assert decoded.goal_code == GOAL_ISSUE_VC

    def test_encoded_attachments_survive(self):
        attachment = AttachDecorator.data_json({"hello": "world"}, ident="vc-proof-0")
        decoded = decode(encode("connect", INVITER_DID, [attachment]))
        assert [a.ident for a in decoded.attachments] == ["vc-proof-0"]
        assert decoded.attachments[0].content == {"hello": "world"}


class TestDecode(TestCase):
    def test_edge(self):
        decoded = decode(to_url(invitation_payload()))
        assert isinstance(decoded, EdgeInvitation)
        assert decoded.kind == "edge"
        assert decoded.invitation_id == invitation_payload()["id"]
        assert decoded.sender_did == INVITER_DID
        assert decoded.label == "Alice"
        assert decoded.goal == "Connect with Alice"
        assert decoded.attachments == []

    def test_alternative_query_params(self):
        for param in ("oob", "c_i"):
            decoded = decode(to_url(invitation_payload(), param=param))
            assert isinstance(decoded, EdgeInvitation), param

    def test_bare_query_and_bare_payload(self):
        url = to_url(invitation_payload())
        query = url.split("?", 1)[1]
        assert isinstance(decode(query), EdgeInvitation)
        assert isinstance(decode(query.split("=", 1)[1]), EdgeInvitation)

    def test_standard_base64(self):
        encoded = bytes_to_b64(json.dumps(invitation_payload()).encode())
        assert isinstance(decode(f"https://x.example?_oob={encoded}"), EdgeInvitation)

    def test_raw_json(self):
        decoded = decode(json.dumps(invitation_payload()))
        assert isinstance(decoded, EdgeInvitation)

    def test_counterparty(self):
        body = dict(invitation_payload()["body"], goal="Connection from CA")
        decoded = decode(to_url(invitation_payload(body=body)))
        assert isinstance(decoded, CounterpartyInvitation)
        assert decoded.kind == "counterparty"

        body["goal"] = "Verify with the Certification Authority"
        decoded = decode(to_url(invitation_payload(body=body)))
        assert isinstance(decoded, CounterpartyInvitation)

    def test_legacy(self):
        payload = {
            "@type": LEGACY_INVITATION_TYPES[0],
            "@id": "legacy-1",
            "label": "Bob",
            "recipientKeys": ["did:key:z6MkBob"],
            "serviceEndpoint": "https://bob.example",
        }
        decoded = decode(to_url(payload, param="c_i"))
        assert isinstance(decoded, LegacyInvitation)
        assert decoded.invitation_id == "legacy-1"
        assert decoded.sender_did == "did:key:z6MkBob"
        assert decoded.label == "Bob"

    def test_legacy_attachment_field(self):
        attachment = {
            "@id": "vc-proof-0",
            "mime-type": "application/json",
            "data": {"json": {"a": 1}},
        }
        payload = invitation_payload(attachments=[attachment])
        decoded = decode(to_url(payload))
        assert [a.ident for a in decoded.attachments] == ["vc-proof-0"]

    def test_current_attachment_field_wins(self):
        def attachment(ident):
            return {"@id": ident, "data": {"json": {}}}

        payload = invitation_payload(
            requests_attach=[attachment("request-0")],
            attachments=[attachment("vc-proof-0")],
        )
        decoded = decode(to_url(payload))
        assert [a.ident for a in decoded.attachments] == ["request-0"]

    def test_bare_peer_did(self):
        decoded = decode("did:peer:abc123")
        assert isinstance(decoded, RawIdentifier)
        assert decoded.kind == "raw"
        assert decoded.is_peer_did
        assert decoded.sender_did == "did:peer:abc123"
        assert decoded.attachments == []

    def test_did_in_query(self):
        decoded = decode("https://x.example?_oob=did:peer:abc123")
        assert isinstance(decoded, RawIdentifier)
        assert decoded.identifier == "did:peer:abc123"

    def test_never_raises(self):
        for text in (
            None,
            "",
            "   ",
            "not an invitation",
            "{broken json",
            "https://x.example?_oob=%%%",
            to_url({"unexpected": True}),
            to_url(invitation_payload(**{"from": "not-a-did"})),
            "did:peer:",
        ):
            decoded = decode(text)
            assert isinstance(decoded, RawIdentifier), text

    def test_empty_peer_did_is_not_peer_did(self):
        assert not decode("did:peer:").is_peer_did
