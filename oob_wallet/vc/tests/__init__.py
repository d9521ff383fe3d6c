"""Shared credential fixtures."""

import nacl.bindings

from ...wallet.jwt import jws_sign_ed25519
from ...wallet.util import bytes_to_b58, verkey_to_did_key

SEED = b"testseed000000000000000000000001"


def person_credential(**overrides) -> dict:
    """A minimal RealPerson credential."""
    credential = {
        "@context": ["https://www.w3.org/2018/credentials/v1"],
        "type": ["VerifiableCredential", "RealPerson"],
        "issuer": "did:prism:issuer",
        "issuanceDate": "2024-01-01T00:00:00Z",
        "credentialSubject": {
            "id": "did:peer:0z6MkHolder",
            "firstName": "Alice",
            "lastName": "Cooper",
            "uniqueId": "AC-1",
        },
    }
    credential.update(overrides)
    return credential


def issuer_keys(seed: bytes = SEED):
    """Return the did:key and secret key for a seed."""
    verkey, secret = nacl.bindings.crypto_sign_seed_keypair(seed)
    return verkey_to_did_key(bytes_to_b58(verkey)), secret


def signed_jwt(vc: dict, seed: bytes = SEED, **claims) -> str:
    """Issue a JWT credential signed by the did:key derived from the seed."""
    did, secret = issuer_keys(seed)
    payload = {"iss": did, "vc": vc, **claims}
    return jws_sign_ed25519({"typ": "JWT", "kid": f"{did}#0"}, payload, secret)
