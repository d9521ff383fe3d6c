"""Structural and cryptographic checks on credential proofs."""

import logging
from typing import Any, Mapping, Optional, Sequence

from marshmallow import EXCLUDE, fields

from ..config.base import BaseSettings
from ..messaging.models.base import BaseModel, BaseModelSchema
from ..messaging.util import datetime_now, str_to_datetime
from ..wallet.jwt import BadJWSError, is_compact_jws, jws_decode
from .credential import credential_from_payload
from .proof_parser import issuer_id, revealed_data
from .verifier import BaseCredentialVerifier

LOGGER = logging.getLogger(__name__)

DEFAULT_EXPECTED_TYPE = "RealPerson"

# Subject fields which identify a credential category when its type is vague
CATEGORY_FIELDS = {
    "RealPerson": (
        "firstName",
        "lastName",
        "uniqueId",
        "dateOfBirth",
        "gender",
        "nationality",
        "placeOfBirth",
    ),
    "CertificationAuthorityIdentity": ("organizationName", "caDID"),
    "CompanyIdentity": ("companyName", "companyDID"),
}

ERR_NO_PROOF = "No VC proof provided"
ERR_PRESENTATION_REQUEST = "Presentation requests not supported in VC proof validation"
ERR_NO_SUBJECT = "Missing credential subject or claims"
ERR_NO_TYPE = "Missing credential type"
ERR_WRONG_TYPE = "Not a {} credential"
ERR_EXPIRED = "Credential has expired"
ERR_BAD_SIGNATURE = "Invalid cryptographic signature"
ERR_VERIFY_FAILED = "Cryptographic verification failed: {}"
ERR_UNSIGNED = "No verifiable signature found"

# Credential fields a signature must cover for its claims to be trusted
SIGNED_FIELDS = (
    "type",
    "credentialType",
    "issuer",
    "issuanceDate",
    "validFrom",
    "expirationDate",
    "validUntil",
    "credentialSubject",
    "claims",
)


class ValidationResult(BaseModel):
    """Outcome of validating a credential proof."""

    class Meta:
        """ValidationResult metadata."""

        schema_class = "ValidationResultSchema"

    def __init__(
        self,
        *,
        errors: Sequence[str] = None,
        issuer: str = None,
        issued_at: str = None,
        expires_at: str = None,
        is_valid: bool = None,
        **kwargs,
    ):
        """Initialize the result; validity is derived from the error list."""
        super().__init__()
        self.errors = list(errors or [])
        self.issuer = issuer
        self.issued_at = issued_at
        self.expires_at = expires_at

    @property
    def is_valid(self) -> bool:
        """True exactly when no check failed."""
        return not self.errors


class ValidationResultSchema(BaseModelSchema):
    """ValidationResult schema."""

    class Meta:
        """ValidationResultSchema metadata."""

        model_class = ValidationResult
        unknown = EXCLUDE

    is_valid = fields.Bool(
        dump_only=True,
        metadata={"description": "Whether all checks passed", "example": True},
    )
    errors = fields.List(
        fields.Str(),
        required=False,
        metadata={
            "description": "Failed checks, in order",
            "example": [ERR_EXPIRED],
        },
    )
    issuer = fields.Str(
        required=False,
        metadata={"description": "Issuer DID", "example": "did:key:z6Mk..."},
    )
    issued_at = fields.Str(
        required=False,
        metadata={"description": "Issuance date", "example": "2024-01-01T00:00:00Z"},
    )
    expires_at = fields.Str(
        required=False,
        metadata={"description": "Expiry date", "example": "2030-01-01T00:00:00Z"},
    )


class InviterIdentity(BaseModel):
    """What a validated credential says about the party presenting it."""

    class Meta:
        """InviterIdentity metadata."""

        schema_class = "InviterIdentitySchema"

    def __init__(
        self,
        *,
        is_verified: bool = False,
        revealed_data: Mapping[str, Any] = None,
        validation_result: ValidationResult = None,
        credential_type: Sequence[str] = None,
        issuer: str = None,
    ):
        """Initialize the identity summary."""
        super().__init__()
        self.is_verified = is_verified
        self.revealed_data = dict(revealed_data or {})
        self.validation_result = validation_result
        self.credential_type = list(credential_type or [])
        self.issuer = issuer


class InviterIdentitySchema(BaseModelSchema):
    """InviterIdentity schema."""

    class Meta:
        """InviterIdentitySchema metadata."""

        model_class = InviterIdentity
        unknown = EXCLUDE

    is_verified = fields.Bool(
        required=True,
        metadata={"description": "Credential passed validation", "example": True},
    )
    revealed_data = fields.Dict(
        required=False,
        metadata={
            "description": "Claims disclosed by the credential",
            "example": {"firstName": "Alice", "lastName": "Cooper"},
        },
    )
    validation_result = fields.Nested(ValidationResultSchema(), required=False)
    credential_type = fields.List(
        fields.Str(),
        required=False,
        metadata={"example": ["VerifiableCredential", "RealPerson"]},
    )
    issuer = fields.Str(required=False, metadata={"description": "Issuer DID"})


def credential_subject(credential: Mapping) -> Optional[Mapping]:
    """Find the subject section of a credential, or its claims."""
    subject = credential.get("credentialSubject")
    if isinstance(subject, list):
        subject = subject[0] if subject else None
    if subject:
        return subject
    claims = credential.get("claims")
    if isinstance(claims, list):
        claims = claims[0] if claims else None
    if isinstance(claims, Mapping):
        return claims.get("credentialSubject") or claims
    return None


def credential_jws(credential: Mapping) -> Optional[str]:
    """
    Locate a compact JWS on a credential.

    The `id` is only taken as a signature when it decodes as one; a URI
    identifier never counts.
    """
    jws = credential.get("_jws")
    if not jws and isinstance(credential.get("proof"), Mapping):
        jws = credential["proof"].get("jws")
    if jws:
        return jws if is_compact_jws(jws) else None
    try:
        jws_decode(credential.get("id"))
    except BadJWSError:
        return None
    return credential["id"]


def signs_credential(jws: str, credential: Mapping) -> bool:
    """Check that the JWS payload asserts the same claims as the credential."""
    try:
        signed = credential_from_payload(jws_decode(jws).payload)
    except BadJWSError:
        return False
    return signed is not None and all(
        signed.get(name) == credential.get(name) for name in SIGNED_FIELDS
    )


class CredentialValidator:
    """Check a credential against the expected category, expiry and signature."""

    def __init__(self, settings: BaseSettings = None):
        """
        Initialize the validator.

        Args:
            settings: Settings providing `oob.expected_credential_type` and
                `oob.require_signed_credentials`

        """
        self._settings = settings

    @property
    def expected_type(self) -> str:
        """Default credential category required of proofs."""
        if self._settings is not None:
            return self._settings.get_str(
                "oob.expected_credential_type", default=DEFAULT_EXPECTED_TYPE
            )
        return DEFAULT_EXPECTED_TYPE

    @property
    def strict(self) -> bool:
        """Whether unsigned credentials fail validation."""
        return bool(
            self._settings is not None
            and self._settings.get_bool("oob.require_signed_credentials")
        )

    @staticmethod
    def matches_category(credential: Mapping, expected: str) -> bool:
        """Check the type, credentialType or tell-tale subject fields."""
        types = credential.get("type")
        if isinstance(types, str):
            types = [types]
        if any(isinstance(t, str) and expected in t for t in types or ()):
            return True
        if credential.get("credentialType") == expected:
            return True
        subject = credential.get("credentialSubject")
        return isinstance(subject, Mapping) and any(
            field in subject for field in CATEGORY_FIELDS.get(expected, ())
        )

    async def validate(
        self,
        credential: Optional[Mapping],
        verifier: BaseCredentialVerifier = None,
        *,
        expected_type: str = None,
    ) -> ValidationResult:
        """
        Validate a credential, accumulating every failed check.

        Args:
            credential: The unwrapped credential, or None
            verifier: Signature verifier; signatures are not checked without one
            expected_type: Credential category to require, overriding settings

        Returns:
            The validation result; never cached

        """
        if not credential:
            return ValidationResult(errors=[ERR_NO_PROOF])
        if credential.get("presentation_definition"):
            return ValidationResult(errors=[ERR_PRESENTATION_REQUEST])

        expected = expected_type or self.expected_type
        result = ValidationResult(
            issuer=issuer_id(credential.get("issuer")),
            issued_at=credential.get("issuanceDate") or credential.get("validFrom"),
            expires_at=(
                credential.get("expirationDate") or credential.get("validUntil")
            ),
        )

        if not credential_subject(credential):
            result.errors.append(ERR_NO_SUBJECT)
        if not credential.get("type"):
            result.errors.append(ERR_NO_TYPE)
        if not self.matches_category(credential, expected):
            result.errors.append(ERR_WRONG_TYPE.format(expected))

        if result.expires_at:
            try:
                if str_to_datetime(result.expires_at) < datetime_now():
                    result.errors.append(ERR_EXPIRED)
            except ValueError:
                LOGGER.warning("Unparseable expiry date: %s", result.expires_at)

        await self._check_signature(credential, verifier, result)
        return result

    async def _check_signature(
        self,
        credential: Mapping,
        verifier: Optional[BaseCredentialVerifier],
        result: ValidationResult,
    ):
        jws = credential_jws(credential)
        if verifier and result.issuer and jws and verifier.supports(result.issuer):
            try:
                verified = await verifier.verify(jws, result.issuer)
                if not (verified and signs_credential(jws, credential)):
                    result.errors.append(ERR_BAD_SIGNATURE)
            except Exception as err:
                LOGGER.warning("Signature verification failed: %s", err)
                result.errors.append(ERR_VERIFY_FAILED.format(err))
        elif self.strict:
            result.errors.append(ERR_UNSIGNED)
        else:
            LOGGER.info(
                "No verifiable signature on credential from %s; accepted unsigned",
                result.issuer,
            )


def derive_identity(
    credential: Optional[Mapping], result: ValidationResult
) -> InviterIdentity:
    """Summarise a validated credential; claims are withheld unless it is valid."""
    credential = credential or {}
    types = credential.get("type") or credential.get("credentialType") or []
    if isinstance(types, str):
        types = [types]
    return InviterIdentity(
        is_verified=result.is_valid,
        revealed_data=(
            revealed_data(credential_subject(credential)) if result.is_valid else {}
        ),
        validation_result=result,
        credential_type=types,
        issuer=result.issuer,
    )
