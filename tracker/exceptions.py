class SyncError(Exception):
    """Base class for failures that abort a single student's sync."""


class StudentNotFound(SyncError):
    pass


class MissingHandle(SyncError):
    pass


class ProfileNotFound(SyncError):
    pass


class SyncInProgress(SyncError):
    pass


class CodeforcesAPIError(Exception):
    """Transport failure, HTTP error or a non-OK envelope from the Codeforces API."""


class InvalidCronExpression(ValueError):
    pass


class UnknownJob(LookupError):
    pass


class JobAlreadyRunning(RuntimeError):
    pass


class EmailDeliveryError(Exception):
    pass
