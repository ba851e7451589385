class ConfigurationError(Exception):
    """
    Fatal setup problem detected before any permission is probed
    (bad target, bad chunk size, unusable credentials, empty catalog...).
    """


class ProbeError(Exception):
    """
    A single testIamPermissions call failed.

    Args:
        message (str): Human readable description of the failure.
        resource (str): Resource name the batch was tested against.
        batch (tuple): Permissions sent in the failed call.
        status (int): HTTP status returned by the API, if any.
        invalid_permissions (list): Permissions the API rejected as invalid.
    """

    def __init__(self, message, resource=None, batch=(), status=None, invalid_permissions=None):
        super().__init__(message)
        self.resource = resource
        self.batch = tuple(batch)
        self.status = status
        self.invalid_permissions = list(invalid_permissions or [])

    @property
    def api_disabled(self):
        return "Cloud Resource Manager API has not been used" in str(self)


class AggregationError(RuntimeError):
    """Shared scan state was mutated outside its contract."""
