"""Domain errors for wpdeploy."""


class DeployError(RuntimeError):
    """Raised when a run or a host task cannot continue safely."""


class HostUnreachableError(DeployError):
    """Raised when the transport to a managed node fails."""
