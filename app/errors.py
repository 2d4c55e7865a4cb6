"""
Error taxonomy for the job lifecycle.

Every rejected operation raises one of these. Each carries a stable ``code``
that clients can switch on, the HTTP status the API answers with, and a
human-readable message. ``create_app`` registers a handler that renders them
as ``{"error": message, "code": code, ...details}``.
"""


class MarketplaceError(Exception):
    """Base class for all expected, client-visible failures."""

    code = "error"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        data = {"error": self.message, "code": self.code}
        data.update(self.details)
        return data


class ValidationError(MarketplaceError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(MarketplaceError):
    code = "unauthenticated"
    status_code = 401
    default_message = "Unauthorized"


class PermissionDenied(MarketplaceError):
    code = "permission_denied"
    status_code = 403
    default_message = "You do not have access to this resource"


class NotFound(MarketplaceError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidTransition(MarketplaceError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current, requested, message=None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or "Cannot transition from {} to {}".format(current, requested),
            current=current,
            requested=requested,
        )


class JobNotBiddable(MarketplaceError):
    code = "job_not_biddable"
    status_code = 409
    default_message = "Job is not accepting bids"


class BidNotFound(MarketplaceError):
    code = "bid_not_found"
    status_code = 404
    default_message = "Bid not found"


class BidAlreadyResolved(MarketplaceError):
    code = "bid_already_resolved"
    status_code = 409
    default_message = "Bid has already been resolved"


class TokenExpired(MarketplaceError):
    code = "token_expired"
    status_code = 410
    default_message = "Claim token expired"


class TokenInvalid(MarketplaceError):
    code = "token_invalid"
    status_code = 403
    default_message = "Invalid claim token"


class AlreadyClaimed(MarketplaceError):
    code = "already_claimed"
    status_code = 409
    default_message = "Job has already been claimed"


class JobNotRatable(MarketplaceError):
    code = "job_not_ratable"
    status_code = 409
    default_message = "Only completed jobs can be rated"


class AlreadyRated(MarketplaceError):
    code = "already_rated"
    status_code = 409
    default_message = "This job was already rated"


class ExternalServiceUnavailable(MarketplaceError):
    """A collaborator (geocoding, SMS, notification fan-out) failed.

    The core never fails because of this. It is logged and reported back
    as a soft warning next to the successful result.
    """

    code = "external_service_unavailable"
    status_code = 503
    default_message = "External service unavailable"

    def __init__(self, service, message=None, **details):
        self.service = service
        super().__init__(
            message or "{} is unavailable".format(service),
            service=service,
            **details
        )

    def as_warning(self):
        return {"service": self.service, "message": self.message}
