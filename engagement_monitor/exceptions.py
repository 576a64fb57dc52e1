"""
Monitor Exceptions

Only transport-level failures are exceptions; policy outcomes (quota
rejection, clamped playback, violations) are returned as values.
"""


class MonitorError(Exception):
    """Base error for the engagement monitor"""
    pass


class DeliveryError(MonitorError):
    """Upstream call (heartbeat, submission) failed at the transport level"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class AssessmentSubmissionError(MonitorError):
    """Assessment answers could not be submitted for scoring"""
    pass
