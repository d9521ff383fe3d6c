"""Message and inner object type identifiers for Out of Band messages."""

SPEC_URI = (
    "https://identity.foundation/didcomm-messaging/spec/v2.0/#out-of-band-messages"
)

DIDCOMM_PREFIX = "https://didcomm.org"
ATALA_PREFIX = "https://didcomm.atalaprism.io"

# Message types
INVITATION = f"{DIDCOMM_PREFIX}/out-of-band/2.0/invitation"
DIDEXCHANGE_REQUEST = f"{DIDCOMM_PREFIX}/didexchange/1.0/request"
PRESENTATION_REQUEST = f"{ATALA_PREFIX}/present-proof/3.0/request-presentation"

LEGACY_INVITATION_TYPES = (
    f"{DIDCOMM_PREFIX}/connections/1.0/invitation",
    f"{ATALA_PREFIX}/connections/1.0/invitation",
)

# Handshake and accept values
HANDSHAKE_DIDEXCHANGE = f"{DIDCOMM_PREFIX}/didexchange/1.0"
ACCEPT_DIDCOMM_V2 = "didcomm/v2"
ACCEPT_AIP2_RFC587 = "didcomm/aip2;env=rfc587"
DEFAULT_ACCEPT = (ACCEPT_DIDCOMM_V2, ACCEPT_AIP2_RFC587)

# Goal codes
GOAL_ISSUE_VC = "issue-vc"
GOAL_REQUEST_PROOF = "request-proof"
GOAL_CA_IDENTITY = "ca-identity-verification"
GOAL_COMPANY_EMPLOYEE = "company-employee-verification"
GOAL_CONNECT = "connect"
GOAL_CONNECT_WITH_CREDENTIAL = "connect-with-credential"
GOAL_CODES = (
    GOAL_ISSUE_VC,
    GOAL_REQUEST_PROOF,
    GOAL_CA_IDENTITY,
    GOAL_COMPANY_EMPLOYEE,
    GOAL_CONNECT,
)

# Goal text marking invitations from the certification authority service
COUNTERPARTY_GOAL = "Connection from CA"
COUNTERPARTY_GOAL_MARKER = "certification authority"

# Attachment identifiers
ATTACH_VC_PROOF = "vc-proof-0"
ATTACH_VC_PROOF_RESPONSE = "vc-proof-response"
ATTACH_VC_PROOF_PREFIX = "vc-proof"
ATTACH_PRESENTATION_REQUEST = "request-0"

# Transport query parameters, current first
OOB_QUERY_PARAMS = ("_oob", "oob", "c_i")
