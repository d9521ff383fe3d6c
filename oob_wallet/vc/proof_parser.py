"""Summarise a credential proof for display."""

from typing import Any, Mapping, NamedTuple, Optional, Sequence

from ..messaging.util import epoch_to_str
from ..wallet.jwt import BadJWSError, is_compact_jws, jws_decode

SUBJECT_METADATA_FIELDS = ("id", "type", "@context")


class ParsedProof(NamedTuple):
    """Display summary of a credential proof."""

    format: str
    type: Sequence[str]
    issuer: Optional[str]
    subject: Optional[str]
    issued_at: Optional[str]
    expires_at: Optional[str]
    revealed_data: Mapping[str, Any]
    selective_disclosure: bool


def issuer_id(issuer: Any) -> Optional[str]:
    """Return the issuer DID from a string or `{"id": ...}` issuer."""
    if isinstance(issuer, str):
        return issuer
    if isinstance(issuer, Mapping):
        return issuer.get("id")
    return None


def credential_types(credential: Mapping) -> Sequence[str]:
    """Return the credential types as a list."""
    subject = credential.get("credentialSubject")
    subject_type = subject.get("type") if isinstance(subject, Mapping) else None
    for value in (credential.get("type"), subject_type):
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)) and value:
            return list(value)
    return ["VerifiableCredential"]


def revealed_data(subject: Any) -> dict:
    """Claims of a credential subject, less its metadata fields."""
    if not isinstance(subject, Mapping):
        return {}
    return {
        k: v
        for k, v in subject.items()
        if k not in SUBJECT_METADATA_FIELDS and v is not None
    }


def detect_format(proof: Any) -> str:
    """Name the wire format of a proof: JWT, SD-JWT, JSON-LD or Unknown."""
    if is_compact_jws(proof):
        return "SD-JWT" if "~" in proof else "JWT"
    if isinstance(proof, Mapping):
        if proof.get("@context"):
            return "JSON-LD"
        if is_compact_jws(proof.get("_jws")):
            return "SD-JWT" if "~" in proof["_jws"] else "JWT"
        wrapped = proof.get("presentation") or proof.get("verifiablePresentation")
        if is_compact_jws(wrapped):
            return "JWT"
    return "Unknown"


def parse_proof(proof: Any) -> ParsedProof:
    """Extract type, issuer, subject, dates and claims from a proof.

    Never raises; fields that cannot be found are left empty.
    """
    fmt = detect_format(proof)
    credential = proof if isinstance(proof, Mapping) else {}
    payload = {}
    if is_compact_jws(proof):
        try:
            payload = jws_decode(proof).payload
        except BadJWSError:
            payload = {}
        credential = payload.get("vc") or {}

    subject = credential.get("credentialSubject")
    if not isinstance(subject, Mapping):
        subject = {}
    issued_at = credential.get("issuanceDate") or credential.get("validFrom")
    expires_at = credential.get("expirationDate") or credential.get("validUntil")
    if not issued_at and payload.get("iat"):
        issued_at = epoch_to_str(payload["iat"])
    if not expires_at and payload.get("exp"):
        expires_at = epoch_to_str(payload["exp"])

    selective = fmt == "SD-JWT" or bool(payload.get("_sd") or payload.get("_sd_alg"))
    if isinstance(credential.get("proof"), Mapping):
        proof_type = credential["proof"].get("type")
        selective = selective or proof_type == "BbsBlsSignature2020"

    return ParsedProof(
        format=fmt,
        type=credential_types(credential),
        issuer=payload.get("iss") or issuer_id(credential.get("issuer")),
        subject=payload.get("sub") or subject.get("id"),
        issued_at=issued_at,
        expires_at=expires_at,
        revealed_data=revealed_data(subject),
        selective_disclosure=selective,
    )
