"""Exception hierarchy for Rail Alerts."""


class RailAlertsError(Exception):
    """Base class for all Rail Alerts errors."""
    pass


class ConfigurationError(RailAlertsError):
    """Invalid or missing configuration detected at startup."""
    pass


class IncidentSourceError(RailAlertsError):
    """Exception raised when the incident feed cannot be fetched or parsed."""
    pass


class LedgerError(RailAlertsError):
    """Exception raised when delivery state cannot be read or written."""
    pass


class NotificationError(RailAlertsError):
    """Exception raised when a message could not be delivered."""
    pass


class SubscriptionError(RailAlertsError):
    """Exception raised when the subscription registry cannot be read or written."""
    pass
