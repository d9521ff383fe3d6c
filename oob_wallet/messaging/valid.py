"""Validators for schema fields."""

import re

from marshmallow.validate import OneOf, Range, Regexp

from .util import epoch_to_str

EXAMPLE_TIMESTAMP = 1640995199  # 2021-12-31 23:59:59Z


class DIDValidation(Regexp):
    """Validate value against any valid DID spec."""

    METHOD = r"([a-zA-Z0-9_]+)"
    METHOD_ID = r"([a-zA-Z0-9_.%=-]+(:[a-zA-Z0-9_.%=-]+)*)"
    PARAMS = r"((;[a-zA-Z0-9_.:%-]+=[a-zA-Z0-9_.:%-]*)*)"
    PATH = r"(\/[^#?]*)?"
    QUERY = r"([?][^#]*)?"
    FRAGMENT = r"(\#.*)?"

    EXAMPLE = "did:peer:0z6MkpTHR8VNsBxYAAWHut2Geadd9jSwuBV8xRoAnwWsdvktH"
    PATTERN = re.compile(rf"^did:{METHOD}:{METHOD_ID}{PARAMS}{PATH}{QUERY}{FRAGMENT}$")

    def __init__(self):
        """Initializer."""
        super().__init__(DIDValidation.PATTERN, error="Value {input} is not a valid DID")


class PeerDID(Regexp):
    """Validate value against the did:peer method."""

    EXAMPLE = DIDValidation.EXAMPLE
    PATTERN = re.compile(r"^did:peer:[0-4][a-zA-Z0-9_.:%=-]+$")

    def __init__(self):
        """Initializer."""
        super().__init__(PeerDID.PATTERN, error="Value {input} is not a peer DID")


class ISO8601DateTime(Regexp):
    """Validate value against ISO 8601 datetime format."""

    EXAMPLE = epoch_to_str(EXAMPLE_TIMESTAMP)
    PATTERN = (
        r"^\d{4}-\d\d-\d\d[T ]\d\d:\d\d"
        r"(?:\:(?:\d\d(?:\.\d{1,6})?))?(?:[+-]\d\d:?\d\d|Z|)$"
    )

    def __init__(self):
        """Initializer."""
        super().__init__(
            ISO8601DateTime.PATTERN,
            error="Value {input} is not a date in valid format",
        )


class UUIDFour(Regexp):
    """Validate UUID4: 8-4-4-4-12 hex digits, the 13th of which being 4."""

    EXAMPLE = "3fa85f64-5717-4562-b3fc-2c963f66afa6"
    PATTERN = (
        r"[a-fA-F0-9]{8}-"
        r"[a-fA-F0-9]{4}-"
        r"4[a-fA-F0-9]{3}-"
        r"[a-fA-F0-9]{4}-"
        r"[a-fA-F0-9]{12}"
    )

    def __init__(self):
        """Initializer."""
        super().__init__(
            UUIDFour.PATTERN,
            error="Value {input} is not UUID4 (8-4-4-4-12 hex digits with digit#13=4)",
        )


GENERIC_DID_VALIDATE = DIDValidation()
GENERIC_DID_EXAMPLE = DIDValidation.EXAMPLE

PEER_DID_VALIDATE = PeerDID()
PEER_DID_EXAMPLE = PeerDID.EXAMPLE

ISO8601_DATETIME_VALIDATE = ISO8601DateTime()
ISO8601_DATETIME_EXAMPLE = ISO8601DateTime.EXAMPLE

UUID4_VALIDATE = UUIDFour()
UUID4_EXAMPLE = UUIDFour.EXAMPLE

TTL_HOURS_VALIDATE = Range(min=1, max=24 * 365)


def one_of(choices) -> OneOf:
    """Build a OneOf validator with a readable error."""
    return OneOf(choices, error="Value {input} must be one of {choices}")
