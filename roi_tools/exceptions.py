#
# exceptions.py: exception classes of ROI tools
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements the exception hierarchy raised by zone drawing, ROI codec,
# and detection service client code.
#

from typing import Optional


class RoiToolsError(Exception):
    """Base class for all ROI tools errors"""


class PreconditionError(RoiToolsError):
    """Operation cannot start: some required input is missing.
    Raised before any network request is made; never retried.
    """


class MissingCredentialError(PreconditionError):
    """No bearer token is available for the request"""

    def __init__(self, message: str = "Unauthorized: no access token found"):
        super().__init__(message)


class MissingNetworkIdError(PreconditionError):
    """Camera network ID is not defined"""

    def __init__(self, message: str = "Network ID is missing for this camera"):
        super().__init__(message)


class FrameNotReadyError(PreconditionError):
    """Frame source has not delivered usable pixel data yet"""

    def __init__(self, message: str = "Frame source is not ready"):
        super().__init__(message)


class TransientTransportError(RoiToolsError):
    """Network failure or server error which persisted after all retry attempts.

    Attributes:
        last_error: the underlying error of the last attempt
        attempts: number of attempts performed
    """

    def __init__(self, message: str, last_error: Optional[BaseException], attempts: int):
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts


class ValidationError(RoiToolsError):
    """Request or response is semantically wrong; never retried"""


class RequestRejectedError(ValidationError):
    """Server rejected the request with HTTP 4xx status.

    Attributes:
        status_code: HTTP status code
        body: response text
    """

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"API request failed: {status_code} - {body or 'Unknown error'}")
        self.status_code = status_code
        self.body = body


class ResponseFormatError(ValidationError):
    """Server response or ROI data has unexpected structure"""


class DrawingStateError(RoiToolsError):
    """Zone editing operation is not allowed in current drawing state"""
