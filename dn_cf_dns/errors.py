class SyncError(Exception):
    """Base class for every error that aborts a sync run."""


class ConfigError(SyncError):
    pass


class NotFoundError(SyncError):
    pass


class UpstreamError(SyncError):
    """A provider API call failed: transport error, non-success status or undecodable body."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ReconcileError(SyncError):
    """Creating, updating or deleting a specific record failed."""

    def __init__(self, message, phase, record_name=None, address=None, host_id=None, record_id=None):
        super().__init__(message)
        self.phase = phase
        self.record_name = record_name
        self.address = address
        self.host_id = host_id
        self.record_id = record_id
