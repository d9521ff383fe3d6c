"""Operations supporting compact JWS decoding and signing."""

import json
import logging
import re
from typing import Any, Mapping, NamedTuple

import nacl.bindings
import nacl.exceptions

from .error import WalletError
from .util import b64_to_bytes, bytes_to_b64

LOGGER = logging.getLogger(__name__)
SUPPORTED_JWT_ALGS = ("EdDSA",)

# header.payload.signature, each base64url without padding
COMPACT_JWS = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*$")


class BadJWSError(WalletError):
    """Compact JWS could not be parsed."""


def dict_to_b64(value: Mapping[str, Any]) -> str:
    """Encode a dictionary as a b64 string."""
    return bytes_to_b64(json.dumps(value).encode(), urlsafe=True, pad=False)


def b64_to_dict(value: str) -> Mapping[str, Any]:
    """Decode a dictionary from a b64 encoded value."""
    return json.loads(b64_to_bytes(value, urlsafe=True))


def is_compact_jws(value: Any) -> bool:
    """Check whether a value has the shape of a compact JWS (or SD-JWT)."""
    if not isinstance(value, str):
        return False
    return bool(COMPACT_JWS.match(value.split("~", 1)[0]))


class DecodedJWS(NamedTuple):
    """The parts of a compact JWS."""

    headers: Mapping[str, Any]
    payload: Mapping[str, Any]
    signing_input: bytes
    signature: bytes
    disclosures: tuple


def jws_decode(token: str) -> DecodedJWS:
    """Split and decode a compact JWS without verifying it.

    Selective disclosures following the issuer-signed part of an SD-JWT are
    returned as-is.

    Raises:
        BadJWSError: If the token is not a well-formed compact JWS

    """
    if not is_compact_jws(token):
        raise BadJWSError("Value is not a compact JWS")
    jws, *disclosures = token.split("~")
    encoded_headers, encoded_payload, encoded_signature = jws.split(".")
    try:
        headers = b64_to_dict(encoded_headers)
        payload = b64_to_dict(encoded_payload)
        signature = b64_to_bytes(encoded_signature, urlsafe=True)
    except ValueError as err:
        raise BadJWSError("Could not decode JWS parts") from err
    if not isinstance(headers, dict) or not isinstance(payload, dict):
        raise BadJWSError("JWS headers and payload must be JSON objects")
    return DecodedJWS(
        headers,
        payload,
        f"{encoded_headers}.{encoded_payload}".encode(),
        signature,
        tuple(d for d in disclosures if d),
    )


def jws_sign_ed25519(
    headers: Mapping[str, Any], payload: Mapping[str, Any], secret: bytes
) -> str:
    """Create an EdDSA compact JWS using a 64-byte ed25519 secret key."""
    headers = {**headers, "alg": "EdDSA"}
    signing_input = f"{dict_to_b64(headers)}.{dict_to_b64(payload)}"
    signed = nacl.bindings.crypto_sign(signing_input.encode(), secret)
    signature = signed[: nacl.bindings.crypto_sign_BYTES]
    return f"{signing_input}.{bytes_to_b64(signature, urlsafe=True, pad=False)}"


def jws_verify_ed25519(decoded: DecodedJWS, verkey: bytes) -> bool:
    """Check an EdDSA signature over the JWS signing input."""
    alg = decoded.headers.get("alg")
    if alg not in SUPPORTED_JWT_ALGS:
        raise BadJWSError(f"Unsupported JWS algorithm: {alg}")
    try:
        nacl.bindings.crypto_sign_open(
            decoded.signature + decoded.signing_input, verkey
        )
    except nacl.exceptions.BadSignatureError:
        LOGGER.debug("JWS signature did not verify")
        return False
    return True
