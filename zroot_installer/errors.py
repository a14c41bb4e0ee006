"""Exception hierarchy for the installer.

Every error is fatal at the point of detection; the pipeline reports the
failing stage and stops. Nothing here is retried or rolled back.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence


class InstallerError(Exception):
    """Base exception for installer errors"""


class InputError(InstallerError):
    """Invalid or unresolvable configuration"""


class PlanError(InputError):
    """Install plan failed validation"""


class UnsupportedTopology(InputError):
    """Device identifier cannot be classified into a partition naming family"""


class PreflightError(InputError):
    """Host or target device is not fit for installation"""


class CommandError(InstallerError):
    """An external command exited non-zero"""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class ProvisioningError(InstallerError):
    """A storage provisioning step failed"""


class ResolutionError(InstallerError):
    """No mirror or fallback yields a valid artifact URL"""


class ArtifactResolutionFailed(ResolutionError):
    def __init__(self, message: str, *, hint: Optional[str] = None) -> None:
        self.hint = hint
        if hint:
            message = f"{message} (last known good: {hint})"
        super().__init__(message)


class AcquisitionError(InstallerError):
    """Download, integrity or extraction failure"""


class DownloadFailed(AcquisitionError):
    pass


class IntegrityCheckFailed(AcquisitionError):
    pass


class ExtractionFailed(AcquisitionError):
    pass


class RenderError(InstallerError):
    """Template could not be rendered"""


class UnboundPlaceholder(RenderError):
    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = sorted(set(missing))
        super().__init__("Unbound template placeholder(s): " + ", ".join(self.missing))


class ExecutionError(InstallerError):
    """Changed-root script exited non-zero"""


class StageFailed(InstallerError):
    """A pipeline step raised; wraps the original error with the step id"""

    def __init__(self, step_id: str, error: BaseException) -> None:
        self.step_id = step_id
        self.error = error
        super().__init__(f"{step_id}: {error}")
