"""Adapters that normalise the shapes a credential proof arrives in.

A proof attached to an invitation or connection request may be a plain W3C
credential, an SDK storage envelope around one, a compact JWT carrying a
`vc` claim, or one of the older base64 wrapper objects. Each shape is
resolved once, at ingestion, into a `CredentialSource` whose
`to_credential()` yields the plain credential dict (or None).
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from ..messaging.util import epoch_to_str
from ..wallet.jwt import BadJWSError, is_compact_jws, jws_decode
from ..wallet.util import b64_to_str

LOGGER = logging.getLogger(__name__)

SDK_CREDENTIAL_TYPE = "prism/jwt"
SDK_RECOVERY_ID = "jwt+credential"
SDK_ACCESSORS = ("verifiableCredential", "verifiable_credential")
BASE64_WRAPPERS = ("verifiableCredential", "credentials", "credential")


def looks_like_credential(value: Any) -> bool:
    """Check for the minimal structure of a credential."""
    return isinstance(value, Mapping) and bool(
        value.get("type") or value.get("credentialType") or value.get("credentialSubject")
    )


class CredentialSource(ABC):
    """A credential proof in one of its wire shapes."""

    FORMAT: str = "Unknown"

    def __init__(self, raw: Any):
        """Initialize the source with the raw attachment payload."""
        self.raw = raw

    @abstractmethod
    def to_credential(self) -> Optional[dict]:
        """Return the plain credential dict, or None if it cannot be unwrapped."""

    def __repr__(self) -> str:
        """Get a human readable string."""
        return "<{}>".format(self.__class__.__name__)


class PlainCredential(CredentialSource):
    """A credential dict that needs no unwrapping."""

    FORMAT = "JSON-LD"

    def to_credential(self) -> Optional[dict]:
        """Return a shallow copy of the credential."""
        return dict(self.raw)


class JwtCredential(CredentialSource):
    """A compact JWT (or SD-JWT) whose `vc` claim holds the credential."""

    FORMAT = "JWT"

    def __init__(self, raw: str):
        """Initialize with a compact JWS string."""
        super().__init__(raw)
        if "~" in raw:
            self.FORMAT = "SD-JWT"

    @property
    def jws(self) -> str:
        """The issuer-signed part of the token."""
        return self.raw.split("~", 1)[0]

    def to_credential(self) -> Optional[dict]:
        """Decode the payload and lift the registered claims into the credential."""
        try:
            payload = jws_decode(self.raw).payload
        except BadJWSError as err:
            LOGGER.warning("Could not decode JWT credential: %s", err)
            return None

        credential = credential_from_payload(payload)
        if credential is not None:
            credential["_jws"] = self.jws
        return credential


def credential_from_payload(payload: Mapping) -> Optional[dict]:
    """
    Build the credential a JWT payload asserts.

    The `vc` claim (or the payload itself, when it has a subject) is copied,
    and the registered `iss`, `iat`, `exp` and `sub` claims fill the
    matching credential fields left empty.
    """
    vc = payload.get("vc")
    if isinstance(vc, Mapping):
        credential = dict(vc)
    elif payload.get("credentialSubject"):
        credential = dict(payload)
    else:
        return None

    if payload.get("iss") and not credential.get("issuer"):
        credential["issuer"] = payload["iss"]
    if payload.get("iat") and not credential.get("issuanceDate"):
        credential["issuanceDate"] = epoch_to_str(payload["iat"])
    if payload.get("exp") and not credential.get("expirationDate"):
        credential["expirationDate"] = epoch_to_str(payload["exp"])
    subject = credential.get("credentialSubject")
    if payload.get("sub") and isinstance(subject, Mapping):
        credential["credentialSubject"] = {"id": payload["sub"], **subject}
    return credential


class SdkEnvelope(CredentialSource):
    """A storage envelope produced by the mobile SDK around a JWT credential."""

    FORMAT = "JWT"

    @staticmethod
    def matches(raw: Any) -> bool:
        """Check for the SDK envelope markers on a payload without a subject."""
        if isinstance(raw, Mapping):
            get = raw.get
        else:
            get = lambda key: getattr(raw, key, None)  # noqa: E731
        return (
            get("credentialType") == SDK_CREDENTIAL_TYPE
            or get("recoveryId") == SDK_RECOVERY_ID
        ) and not get("credentialSubject")

    def _unwrap(self) -> Any:
        for name in SDK_ACCESSORS:
            accessor = getattr(self.raw, name, None)
            if callable(accessor):
                return accessor()
        get = (
            self.raw.get
            if isinstance(self.raw, Mapping)
            else lambda key: getattr(self.raw, key, None)
        )
        return get("vc") or get("properties")

    def to_credential(self) -> Optional[dict]:
        """Unwrap the envelope, trying the accessor, then `vc`, then `properties`."""
        inner = self._unwrap()
        if is_compact_jws(inner):
            return JwtCredential(inner).to_credential()
        if looks_like_credential(inner):
            return dict(inner)
        LOGGER.warning("SDK credential envelope detected but could not be unwrapped")
        return None


class WrappedCredential(CredentialSource):
    """A legacy wrapper carrying the credential base64 encoded."""

    FORMAT = "JSON-LD"

    @staticmethod
    def wrapped_value(raw: Mapping) -> Optional[str]:
        """Find the base64 payload in one of the known wrapper fields."""
        for key in BASE64_WRAPPERS:
            value = raw.get(key)
            if isinstance(value, list):
                value = value[0] if value else None
            if isinstance(value, str):
                return value
        return None

    def to_credential(self) -> Optional[dict]:
        """Decode the wrapped value into a credential."""
        value = self.wrapped_value(self.raw)
        if is_compact_jws(value):
            return JwtCredential(value).to_credential()
        try:
            urlsafe = "-" in value or "_" in value
            decoded = json.loads(b64_to_str(value, urlsafe=urlsafe))
        except (TypeError, ValueError) as err:
            LOGGER.warning("Could not decode wrapped credential: %s", err)
            return None
        return dict(decoded) if looks_like_credential(decoded) else None


def resolve_credential_source(raw: Any) -> Optional[CredentialSource]:
    """Pick the adapter for a raw credential payload.

    Returns None when the payload is not recognisable as a credential.
    """
    if raw is None:
        return None
    if isinstance(raw, CredentialSource):
        return raw
    if is_compact_jws(raw):
        return JwtCredential(raw)
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if SdkEnvelope.matches(raw):
        return SdkEnvelope(raw)
    if not isinstance(raw, Mapping):
        return None
    if looks_like_credential(raw):
        return PlainCredential(raw)
    if WrappedCredential.wrapped_value(raw):
        return WrappedCredential(raw)
    return None


def load_credential(raw: Any) -> Optional[dict]:
    """Resolve and unwrap a raw payload in one step; failures yield None."""
    source = resolve_credential_source(raw)
    return source.to_credential() if source else None
