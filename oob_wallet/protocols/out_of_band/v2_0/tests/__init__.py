"""Shared invitation fixtures."""

import json

from .....wallet.util import bytes_to_b64
from ..message_types import INVITATION

INVITER_DID = "did:peer:2.Ez6LSinviter"


def invitation_payload(**overrides) -> dict:
    """An out-of-band 2.0 invitation in wire form."""
    payload = {
        "type": INVITATION,
        "id": "f1f6b4f2-1c4e-4f5a-9d2a-6e3f1c2b7a10",
        "from": INVITER_DID,
        "body": {
            "goal_code": "connect",
            "goal": "Connect with Alice",
            "label": "Alice",
            "accept": ["didcomm/v2"],
        },
    }
    payload.update(overrides)
    return payload


def to_url(payload: dict, base_url: str = "https://wallet.example", param="_oob"):
    """Encode a wire payload the way a sharing wallet does."""
    encoded = bytes_to_b64(json.dumps(payload).encode(), urlsafe=True, pad=False)
    return f"{base_url}?{param}={encoded}"
