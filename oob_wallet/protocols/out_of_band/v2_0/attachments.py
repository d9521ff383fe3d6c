"""Pull credential proofs and presentation requests out of attachment lists."""

import logging
import time
from typing import Any, Mapping, NamedTuple, Optional, Sequence, Union

from ....messaging.decorators.attach_decorator import AttachDecorator
from ....messaging.models.base import BaseModelError
from ....vc.credential import CredentialSource, resolve_credential_source
from .message_types import (
    ATTACH_PRESENTATION_REQUEST,
    ATTACH_VC_PROOF,
    ATTACH_VC_PROOF_PREFIX,
    PRESENTATION_REQUEST,
)

LOGGER = logging.getLogger(__name__)

PRESENTATION_DEFINITION_FORMAT = "dif/presentation-exchange/definitions@v1.0"
PRESENTATION_DEFINITION_ID = "simple-realperson-request"


class ExtractedAttachments(NamedTuple):
    """The proof and request found on an invitation or request message."""

    proof: Optional[CredentialSource] = None
    request: Optional[Mapping] = None

    @property
    def credential(self) -> Optional[dict]:
        """Unwrap the proof into a plain credential, if there is one."""
        return self.proof.to_credential() if self.proof else None


def _as_attachment(value: Union[AttachDecorator, Mapping]) -> Optional[AttachDecorator]:
    if isinstance(value, AttachDecorator):
        return value
    if not isinstance(value, Mapping):
        return None
    try:
        return AttachDecorator.deserialize(value)
    except BaseModelError as err:
        LOGGER.warning("Skipping malformed attachment: %s", err)
        return None


def _content(attachment: AttachDecorator) -> Any:
    try:
        return attachment.content
    except (TypeError, ValueError) as err:
        LOGGER.warning("Could not read attachment %s: %s", attachment.ident, err)
        return None


def extract(
    attachments: Optional[Sequence[Union[AttachDecorator, Mapping]]],
) -> ExtractedAttachments:
    """
    Find the credential proof and the presentation request in one pass.

    Attachments with other identifiers are ignored, and the first match of
    each kind wins.

    Args:
        attachments: Attachment models or their serialized dicts

    Returns:
        The extracted proof (as a credential source) and request

    """
    proof = None
    request = None
    for value in attachments or ():
        attachment = _as_attachment(value)
        if not attachment or not attachment.ident:
            continue
        if proof is None and attachment.ident.startswith(ATTACH_VC_PROOF_PREFIX):
            proof = resolve_credential_source(_content(attachment))
            if proof is None:
                LOGGER.info("Attachment %s holds no usable credential", attachment.ident)
        elif request is None and attachment.ident == ATTACH_PRESENTATION_REQUEST:
            content = _content(attachment)
            if isinstance(content, Mapping):
                request = dict(content)
    return ExtractedAttachments(proof=proof, request=request)


def credential_attachment(
    credential: Mapping, ident: str = ATTACH_VC_PROOF
) -> AttachDecorator:
    """Wrap a credential as an inline JSON proof attachment."""
    return AttachDecorator.data_json(dict(credential), ident=ident)


def presentation_request() -> dict:
    """Build the present-proof request asking for a RealPerson credential."""
    return {
        "@type": PRESENTATION_REQUEST,
        "@id": f"presentation-request-{int(time.time() * 1000)}",
        "comment": "Please present your RealPerson credential",
        "formats": [
            {
                "attach_id": "presentation-definition",
                "format": PRESENTATION_DEFINITION_FORMAT,
            }
        ],
        "request_presentations_attach": [
            {
                "@id": "presentation-definition",
                "mime-type": "application/json",
                "data": {
                    "json": {
                        "presentation_definition": {
                            "id": PRESENTATION_DEFINITION_ID,
                            "input_descriptors": [
                                {
                                    "id": "realperson-credential",
                                    "name": "RealPerson Credential",
                                    "purpose": "Verify your identity",
                                    "constraints": {
                                        "fields": [
                                            {
                                                "path": ["$.type"],
                                                "filter": {
                                                    "type": "array",
                                                    "contains": {
                                                        "const": "VerifiableCredential"
                                                    },
                                                },
                                            }
                                        ]
                                    },
                                }
                            ],
                        }
                    }
                },
            }
        ],
    }


def presentation_request_attachment() -> AttachDecorator:
    """Wrap the presentation request as the `request-0` attachment."""
    return AttachDecorator.data_json(
        presentation_request(), ident=ATTACH_PRESENTATION_REQUEST
    )
