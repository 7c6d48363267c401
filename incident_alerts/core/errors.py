"""Exceptions raised by the alert engine.

Geocode exhaustion and duplicate submissions are ordinary outcomes and
are reported as result values, not exceptions. Delivery failures are
DeliveryResult values.
"""


class IncidentAlertsError(Exception):
    """Base class for engine errors."""


class InvalidLocation(IncidentAlertsError, ValueError):
    """A location could not be resolved or is out of range."""


class InvalidRadius(IncidentAlertsError, ValueError):
    """A subscription radius is outside the allowed bounds."""


class MisconfiguredChannel(IncidentAlertsError):
    """No delivery channel is registered, so alerting cannot work at all."""


class StoreUnavailable(IncidentAlertsError):
    """The backing store could not be read or written."""
