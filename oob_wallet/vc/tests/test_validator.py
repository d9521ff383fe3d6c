from unittest import IsolatedAsyncioTestCase

from ...config.settings import Settings
from ...tests import mock
from ...wallet.jwt import jws_sign_ed25519
from ..credential import load_credential
from ..validator import CredentialValidator, derive_identity
from ..verifier import BaseCredentialVerifier, Ed25519JwsVerifier
from . import SEED, issuer_keys, person_credential, signed_jwt


class TestCredentialValidator(IsolatedAsyncioTestCase):
    def setUp(self):
        self.validator = CredentialValidator(Settings())

    async def test_valid_unsigned_lenient(self):
        result = await self.validator.validate(person_credential())
        assert result.is_valid
        assert result.errors == []
        assert result.issuer == "did:prism:issuer"
        assert result.issued_at == "2024-01-01T00:00:00Z"

    async def test_no_proof(self):
        result = await self.validator.validate(None)
        assert not result.is_valid
        assert result.errors == ["No VC proof provided"]

    async def test_accumulates_errors(self):
        result = await self.validator.validate(
            {"issuer": "did:example:1", "expirationDate": "2001-01-01T00:00:00Z"}
        )
        assert result.errors == [
            "Missing credential subject or claims",
            "Missing credential type",
            "Not a RealPerson credential",
            "Credential has expired",
        ]
        assert not result.is_valid

    async def test_category_by_person_fields(self):
        result = await self.validator.validate(
            person_credential(type=["VerifiableCredential"])
        )
        assert result.is_valid

    async def test_expected_type_from_settings(self):
        validator = CredentialValidator(
            Settings({"oob.expected_credential_type": "SecurityClearance"})
        )
        result = await validator.validate(
            person_credential(credentialSubject={"clearance": "secret"})
        )
        assert result.errors == ["Not a SecurityClearance credential"]
        result = await validator.validate(
            person_credential(credentialSubject={"clearance": "secret"}),
            expected_type="RealPerson",
        )
        assert result.is_valid

    async def test_strict_mode_rejects_unsigned(self):
        validator = CredentialValidator(
            Settings({"oob.require_signed_credentials": True})
        )
        result = await validator.validate(person_credential())
        assert result.errors == ["No verifiable signature found"]

    async def test_signed_jwt_verifies(self):
        cred = load_credential(signed_jwt(person_credential(issuer=None)))
        validator = CredentialValidator(
            Settings({"oob.require_signed_credentials": True})
        )
        result = await validator.validate(cred, Ed25519JwsVerifier())
        assert result.is_valid, result.errors

    async def test_signed_jwt_wrong_issuer(self):
        cred = load_credential(signed_jwt(person_credential(issuer=None)))
        other = load_credential(
            signed_jwt(person_credential(issuer=None), seed=SEED[:-1] + b"2")
        )
        cred["issuer"] = other["issuer"]
        result = await self.validator.validate(cred, Ed25519JwsVerifier())
        assert result.errors == ["Invalid cryptographic signature"]

    async def test_verifier_exception(self):
        verifier = mock.MagicMock(spec=BaseCredentialVerifier)
        verifier.supports.return_value = True
        verifier.verify = mock.CoroutineMock(side_effect=ValueError("boom"))
        result = await self.validator.validate(
            person_credential(_jws="a.b.c"), verifier
        )
        assert result.errors == ["Cryptographic verification failed: boom"]

    async def test_jws_from_id(self):
        token = signed_jwt(person_credential(issuer=None))
        verifier = mock.MagicMock(spec=BaseCredentialVerifier)
        verifier.supports.return_value = True
        verifier.verify = mock.CoroutineMock(return_value=False)
        result = await self.validator.validate(person_credential(id=token), verifier)
        verifier.verify.assert_awaited_once_with(token, "did:prism:issuer")
        assert result.errors == ["Invalid cryptographic signature"]

    async def test_uri_id_is_not_a_signature(self):
        did, _ = issuer_keys()
        validator = CredentialValidator(
            Settings({"oob.require_signed_credentials": True})
        )
        for cred_id in (
            "https://issuer.example.com/credentials/1",
            "urn:uuid:3978344f.8596.4c3a",
            "h.p.s",
        ):
            cred = person_credential(issuer=did, id=cred_id)
            result = await self.validator.validate(cred, Ed25519JwsVerifier())
            assert result.is_valid, result.errors
            result = await validator.validate(cred, Ed25519JwsVerifier())
            assert result.errors == ["No verifiable signature found"]

    async def test_signature_over_other_claims(self):
        genuine = load_credential(signed_jwt(person_credential(issuer=None)))
        forged = person_credential(
            issuer=genuine["issuer"],
            credentialSubject={"firstName": "Mallory", "lastName": "Forged"},
        )
        for placement in (
            {"proof": {"type": "JsonWebSignature2020", "jws": genuine["_jws"]}},
            {"_jws": genuine["_jws"]},
            {"id": genuine["_jws"]},
        ):
            result = await self.validator.validate(
                {**forged, **placement}, Ed25519JwsVerifier()
            )
            assert result.errors == ["Invalid cryptographic signature"]
            identity = derive_identity({**forged, **placement}, result)
            assert identity.revealed_data == {}

    async def test_detached_proof_over_same_claims(self):
        did, secret = issuer_keys()
        cred = person_credential(issuer=did)
        jws = jws_sign_ed25519({"kid": f"{did}#0"}, {"vc": cred}, secret)
        result = await self.validator.validate(
            {**cred, "proof": {"jws": jws}}, Ed25519JwsVerifier()
        )
        assert result.is_valid, result.errors

    async def test_derive_identity(self):
        cred = person_credential()
        result = await self.validator.validate(cred)
        identity = derive_identity(cred, result)
        assert identity.is_verified
        assert identity.revealed_data == {
            "firstName": "Alice",
            "lastName": "Cooper",
            "uniqueId": "AC-1",
        }
        assert identity.serialize()["validation_result"]["is_valid"] is True

    async def test_derive_identity_unverified_hides_claims(self):
        cred = person_credential(expirationDate="2000-01-01T00:00:00Z")
        result = await self.validator.validate(cred)
        identity = derive_identity(cred, result)
        assert not identity.is_verified
        assert identity.revealed_data == {}
