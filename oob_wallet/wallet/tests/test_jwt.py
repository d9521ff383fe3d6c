import nacl.bindings
import pytest

from .. import jwt as test_module
from ..util import random_seed


@pytest.fixture
def keypair():
    return nacl.bindings.crypto_sign_seed_keypair(random_seed())


def test_sign_and_verify(keypair):
    verkey, secret = keypair
    token = test_module.jws_sign_ed25519(
        {"typ": "JWT"}, {"iss": "did:peer:issuer", "vc": {}}, secret
    )
    assert test_module.is_compact_jws(token)

    decoded = test_module.jws_decode(token)
    assert decoded.headers == {"typ": "JWT", "alg": "EdDSA"}
    assert decoded.payload["iss"] == "did:peer:issuer"
    assert decoded.disclosures == ()
    assert test_module.jws_verify_ed25519(decoded, verkey)

    other_verkey, _ = nacl.bindings.crypto_sign_seed_keypair(random_seed())
    assert not test_module.jws_verify_ed25519(decoded, other_verkey)


def test_sd_jwt_disclosures(keypair):
    _, secret = keypair
    token = test_module.jws_sign_ed25519({}, {"_sd": ["abc"]}, secret)
    decoded = test_module.jws_decode(token + "~WyJzYWx0IiwibmFtZSIsIkFsaWNlIl0~")
    assert decoded.disclosures == ("WyJzYWx0IiwibmFtZSIsIkFsaWNlIl0",)


def test_unsupported_alg(keypair):
    verkey, _ = keypair
    token = ".".join(
        (
            test_module.dict_to_b64({"alg": "ES256"}),
            test_module.dict_to_b64({}),
            "c2ln",
        )
    )
    with pytest.raises(test_module.BadJWSError):
        test_module.jws_verify_ed25519(test_module.jws_decode(token), verkey)


def test_malformed():
    assert not test_module.is_compact_jws({"proof": {}})
    assert not test_module.is_compact_jws("a.b")
    with pytest.raises(test_module.BadJWSError):
        test_module.jws_decode("not-a-jws")
    with pytest.raises(test_module.BadJWSError):
        test_module.jws_decode("!!!.@@@.###")
    with pytest.raises(test_module.BadJWSError):
        test_module.jws_decode(
            ".".join((test_module.dict_to_b64([1]), test_module.dict_to_b64({}), ""))
        )
