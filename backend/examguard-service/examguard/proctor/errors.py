"""
Proctoring Errors

MediaAccessError and ModelWarmupError keep the loop INACTIVE until retried.
DetectionFailure is contained inside a single check cycle.
StaleCompletionError marks an oracle result that arrived after deactivation.
"""


class ProctorError(Exception):
    """Base class for proctoring errors"""


class MediaAccessError(ProctorError):
    """Video source could not be acquired (missing, busy or denied)"""


class DetectionFailure(ProctorError):
    """Oracle could not produce a result for a frame"""


class OracleTransportError(DetectionFailure):
    """Network or response-format failure talking to a remote oracle"""


class ModelWarmupError(ProctorError):
    """Local detection model failed to load"""


class StaleCompletionError(ProctorError):
    """Oracle result belongs to a loop generation that is no longer active"""
