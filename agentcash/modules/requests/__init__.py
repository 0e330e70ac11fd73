"""Cash request domain exports.

Services live in :mod:`.service`, :mod:`.lifecycle` and :mod:`.expiry`; they are
not re-exported here because the fee policy imports this package's models.
"""

from .details import (
    CancellationDetails,
    FloatDetails,
    FloatDirection,
    WithdrawalDetails,
    dump_details,
    parse_details,
)
from .exceptions import (
    InvalidConfirmationCodeError,
    LedgerFailureError,
    RequestConflictError,
    RequestError,
    RequestExpiredError,
    RequestNotFoundError,
    RequestPermissionError,
    RequestValidationError,
)
from .models import NewRequest, RequestKind, RequestRecord, RequestStatus, RequestView

__all__ = [
    "CancellationDetails",
    "FloatDetails",
    "FloatDirection",
    "InvalidConfirmationCodeError",
    "LedgerFailureError",
    "NewRequest",
    "RequestConflictError",
    "RequestError",
    "RequestExpiredError",
    "RequestKind",
    "RequestNotFoundError",
    "RequestPermissionError",
    "RequestRecord",
    "RequestStatus",
    "RequestValidationError",
    "RequestView",
    "WithdrawalDetails",
    "dump_details",
    "parse_details",
]
