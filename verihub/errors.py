"""
Exception types raised by the audit engine and its collaborators
"""


class VeriHubError(Exception):
    """Base class for VeriHub errors"""


class RunNotFoundError(VeriHubError, LookupError):
    """Raised when an audit run id does not resolve to a stored run"""

    def __init__(self, run_id: str):
        super().__init__(f"Audit run not found: {run_id}")
        self.run_id = run_id


class StatusTransitionError(VeriHubError, ValueError):
    """Raised on a status change the audit run state machine does not allow"""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move audit run from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class ProviderUnavailableError(VeriHubError, RuntimeError):
    """Raised when an answer provider cannot produce answers"""


class SeedDataError(VeriHubError):
    """Raised when a seed file exists but cannot be parsed"""
