class UsageReportError(Exception):
    """Base class for every failure the usage report surfaces to the user."""


class TransportError(UsageReportError):
    """The request to the Cloud Foundry API, or decoding its reply, failed."""


class MalformedResponse(UsageReportError):
    """An API resource is missing a field or carries one of the wrong type."""


class NotFound(UsageReportError):
    pass


class FilterSetupFailure(UsageReportError):
    """The service plan lookup behind the service instance filter failed."""
