import pytest

from ....wallet.util import str_to_b64
from ..attach_decorator import AttachDecorator, AttachDecoratorData

CREDENTIAL = {
    "type": ["VerifiableCredential", "CertificationAuthorityCredential"],
    "credentialSubject": {"caDID": "did:peer:0z6MkCertAuthority"},
}


class TestAttachDecorator:
    def test_data_json(self):
        attach = AttachDecorator.data_json(CREDENTIAL, ident="vc-proof-0")
        assert attach.ident == "vc-proof-0"
        assert attach.mime_type == "application/json"
        assert attach.content == CREDENTIAL

        serialized = attach.serialize()
        assert serialized["@id"] == "vc-proof-0"
        assert serialized["mime-type"] == "application/json"
        assert serialized["data"] == {"json": CREDENTIAL}
        assert AttachDecorator.deserialize(serialized).content == CREDENTIAL

    def test_data_base64(self):
        attach = AttachDecorator.data_base64(CREDENTIAL)
        assert attach.ident
        assert attach.data.json is None
        assert attach.content == CREDENTIAL
        assert "base64" in attach.serialize()["data"]

    def test_links(self):
        attach = AttachDecorator(
            data=AttachDecoratorData(
                links_="https://wallet.example/vc.json", sha256_="abcd"
            )
        )
        assert attach.content == (["https://wallet.example/vc.json"], "abcd")
        assert attach.serialize()["data"] == {
            "links": ["https://wallet.example/vc.json"],
            "sha256": "abcd",
        }

    def test_empty_data(self):
        assert AttachDecorator(data=AttachDecoratorData()).content is None
        assert AttachDecorator(data=None).content is None

    def test_plain_id_and_bare_base64(self):
        attach = AttachDecorator.deserialize(
            {
                "id": "request-0",
                "media_type": "application/json",
                "data": str_to_b64('{"goal": "verify"}'),
            }
        )
        assert attach.ident == "request-0"
        assert attach.mime_type == "application/json"
        assert attach.content == {"goal": "verify"}

    def test_bad_base64_content(self):
        attach = AttachDecorator(
            data=AttachDecoratorData(base64_=str_to_b64("not json"))
        )
        with pytest.raises(ValueError):
            attach.content
