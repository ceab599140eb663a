"""Error kinds raised across the TPV call pipeline.

Every error carries the HTTP status it maps to when it reaches a request
handler. Notification and sync errors are only ever logged.
"""


class TPVError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(TPVError):
    """Bad or missing input; nothing was performed."""


class ConfigurationError(TPVError):
    """A required credential or setting is missing."""


class ProviderError(TPVError):
    """Non-2xx or unusable response from Vapi, Twilio or Google."""

    def __init__(self, provider: str, status_code: int, body: str):
        super().__init__(f"{provider} API error: {status_code} - {body}")
        self.provider = provider
        self.upstream_status = status_code
        self.body = body


class PersistenceError(TPVError):
    """Store write or update failed."""


class NotificationError(TPVError):
    """SMS could not be sent."""


class SyncError(TPVError):
    """Sheet mirror could not be refreshed."""


class AuthError(TPVError):
    """Service-account token could not be obtained."""
