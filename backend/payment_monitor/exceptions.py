"""Exception hierarchy for the payment failure monitor."""


class MonitorError(Exception):
    """Base class for errors raised by the monitor."""


class WebhookVerificationError(MonitorError):
    """The inbound webhook could not be authenticated or parsed."""


class NotificationError(MonitorError):
    """Rendering or dispatching the alert email failed."""


class MailTransportNotConfigured(NotificationError):
    """Gmail credentials are missing."""
