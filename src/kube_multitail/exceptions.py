from typing import Optional, Dict, Any


EXIT_OK = 0
EXIT_FAILURE = 1


class KubeMultitailError(Exception):
    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        exit_code: int = EXIT_FAILURE,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.exit_code = exit_code
        self.details = details or {}
        super().__init__(self.message)


class UsageError(KubeMultitailError):
    def __init__(self, message: str = "Invalid usage", code: str = "USAGE_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code, EXIT_FAILURE, details)


class MissingAppsError(UsageError):
    def __init__(self):
        super().__init__("At least one application name is required", "MISSING_APPS")


class InvalidSinceError(UsageError):
    def __init__(self, value: str):
        super().__init__(
            f"Invalid --since duration '{value}' (expected e.g. 30s, 10m, 1h, 1d)",
            "INVALID_SINCE",
            {"since": value}
        )


class ConfigError(KubeMultitailError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", EXIT_FAILURE, details)


class DiscoveryError(KubeMultitailError):
    pass


class TotalDiscoveryFailure(DiscoveryError):
    def __init__(self, apps):
        super().__init__(
            "No pods found for the specified apps",
            "NO_PODS_FOUND",
            EXIT_FAILURE,
            {"apps": list(apps)}
        )


class RunInterrupted(KubeMultitailError):
    """User cancellation; a normal termination path."""

    def __init__(self):
        super().__init__("Interrupted", "INTERRUPTED", EXIT_OK)


class ExternalCommandError(KubeMultitailError):
    pass


class KubectlError(ExternalCommandError):
    def __init__(self, args, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(
            f"kubectl {' '.join(args)} failed: {message}",
            "KUBECTL_ERROR",
            EXIT_FAILURE,
            {"args": list(args), "returncode": returncode}
        )


class StreamOpenError(ExternalCommandError):
    def __init__(self, pod: str, container: str, message: str):
        super().__init__(
            f"Could not stream logs for {pod}:{container}: {message}",
            "STREAM_OPEN_FAILED",
            EXIT_FAILURE,
            {"pod": pod, "container": container}
        )
