import json
import re

from .....messaging.decorators.attach_decorator import AttachDecorator
from .....vc.credential import JwtCredential, PlainCredential
from .....vc.tests import person_credential, signed_jwt
from ..attachments import (
    credential_attachment,
    extract,
    presentation_request,
    presentation_request_attachment,
)
from ..message_types import PRESENTATION_REQUEST


def test_extract_nothing():
    for attachments in (None, []):
        extracted = extract(attachments)
        assert extracted.proof is None
        assert extracted.request is None
        assert extracted.credential is None


def test_extract_proof_and_request():
    cred = person_credential()
    extracted = extract(
        [credential_attachment(cred), presentation_request_attachment()]
    )
    assert isinstance(extracted.proof, PlainCredential)
    assert extracted.credential == cred
    assert extracted.request["@type"] == PRESENTATION_REQUEST


def test_extract_from_wire_dicts():
    cred = person_credential()
    wire = [
        AttachDecorator.data_json({"other": True}, ident="thumbnail").serialize(),
        AttachDecorator.data_base64(cred, ident="vc-proof-response").serialize(),
    ]
    extracted = extract(wire)
    assert extracted.credential == cred
    assert extracted.request is None


def test_extract_first_proof_wins():
    first = person_credential(issuer="did:example:first")
    second = person_credential(issuer="did:example:second")
    extracted = extract(
        [credential_attachment(first), credential_attachment(second, "vc-proof-1")]
    )
    assert extracted.credential["issuer"] == "did:example:first"


def test_extract_jwt_proof():
    token = signed_jwt(person_credential())
    attachment = {"@id": "vc-proof-0", "data": {"json": token}}
    extracted = extract([attachment])
    assert isinstance(extracted.proof, JwtCredential)
    assert extracted.credential["credentialSubject"]["firstName"] == "Alice"


def test_sdk_attachment_shape():
    attachment = {
        "id": "vc-proof-0",
        "media_type": "application/json",
        "data": AttachDecorator.data_base64(person_credential()).data.base64,
    }
    assert extract([attachment]).credential == person_credential()


def test_unusable_proof_is_not_fatal():
    extracted = extract(
        [
            {"@id": "vc-proof-0", "data": {"json": {"hello": "world"}}},
            {"@id": "request-0", "data": {"json": "not a request"}},
            "not an attachment",
            {"data": {"json": person_credential()}},
        ]
    )
    assert extracted.proof is None
    assert extracted.request is None


def test_presentation_request_shape():
    request = presentation_request()
    assert request["@type"] == PRESENTATION_REQUEST
    assert re.fullmatch(r"presentation-request-\d{13}", request["@id"])
    definition = request["request_presentations_attach"][0]["data"]["json"]
    assert definition["presentation_definition"]["id"] == "simple-realperson-request"
    assert presentation_request_attachment().ident == "request-0"


def test_extract_json_string_proof():
    raw = json.dumps(person_credential())
    extracted = extract([{"@id": "vc-proof-0", "data": {"json": raw}}])
    assert isinstance(extracted.proof, PlainCredential)
    assert extracted.credential == person_credential()
