from rest_framework import status
from rest_framework.exceptions import APIException


class ConflictError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Payment already exists for this booking."
    default_code = "conflict"


class ProviderError(APIException):
    """Paystack could not be reached or reported a non-success response."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment provider request failed."
    default_code = "provider_error"


class ConfigurationError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Online payments are not configured."
    default_code = "configuration_error"


class SignatureError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid signature."
    default_code = "invalid_signature"


class DomainError(APIException):
    """A transition was requested from a state that does not allow it."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Operation not permitted for this payment."
    default_code = "domain_error"
