"""Wallet utility functions."""

import base64

import base58
import nacl.bindings
import nacl.utils

# multicodec prefix for an ed25519 public key
ED25519_MULTICODEC = b"\xed\x01"
PEER_DID_NUMALGO_0 = "did:peer:0"


def random_seed() -> bytes:
    """Generate a random seed value."""
    return nacl.utils.random(nacl.bindings.crypto_sign_SEEDBYTES)


def pad(val: str) -> str:
    """Pad base64 values if need be: JWT calls to omit trailing padding."""
    padlen = 4 - len(val) % 4
    return val if padlen > 2 else (val + "=" * padlen)


def unpad(val: str) -> str:
    """Remove padding from base64 values if need be."""
    return val.rstrip("=")


def b64_to_bytes(val: str, urlsafe=False) -> bytes:
    """Convert a base 64 string to bytes."""
    if urlsafe:
        return base64.urlsafe_b64decode(pad(val))
    return base64.b64decode(pad(val))


def b64_to_str(val: str, urlsafe=False, encoding=None) -> str:
    """Convert a base 64 string to string on input encoding (default utf-8)."""
    return b64_to_bytes(val, urlsafe).decode(encoding or "utf-8")


def bytes_to_b64(val: bytes, urlsafe=False, pad=True, encoding: str = "ascii") -> str:
    """Convert a byte string to base 64."""
    b64 = (
        base64.urlsafe_b64encode(val).decode(encoding)
        if urlsafe
        else base64.b64encode(val).decode(encoding)
    )
    return b64 if pad else unpad(b64)


def str_to_b64(val: str, urlsafe=False, encoding=None, pad=True) -> str:
    """Convert a string to base64 string on input encoding (default utf-8)."""
    return bytes_to_b64(val.encode(encoding or "utf-8"), urlsafe, pad)


def b58_to_bytes(val: str) -> bytes:
    """Convert a base 58 string to bytes."""
    return base58.b58decode(val)


def bytes_to_b58(val: bytes) -> str:
    """Convert a byte string to base 58."""
    return base58.b58encode(val).decode("ascii")


def verkey_to_multikey(verkey: str) -> str:
    """Encode a base58 ed25519 verkey as a multibase multicodec key."""
    return "z" + bytes_to_b58(ED25519_MULTICODEC + b58_to_bytes(verkey))


def multikey_to_verkey(multikey: str) -> str:
    """Decode a multibase multicodec ed25519 key to a base58 verkey.

    Raises:
        ValueError: If the key is not a base58btc ed25519 multikey

    """
    if not multikey.startswith("z"):
        raise ValueError("Only base58btc multibase keys are supported")
    raw = b58_to_bytes(multikey[1:])
    if not raw.startswith(ED25519_MULTICODEC):
        raise ValueError("Only ed25519 multikeys are supported")
    return bytes_to_b58(raw[len(ED25519_MULTICODEC) :])


def verkey_to_peer_did(verkey: str) -> str:
    """Derive an inception-key peer DID (numalgo 0) from a verkey."""
    return PEER_DID_NUMALGO_0 + verkey_to_multikey(verkey)


def verkey_to_did_key(verkey: str) -> str:
    """Derive a did:key from a verkey."""
    return "did:key:" + verkey_to_multikey(verkey)
