"""Error taxonomy for the fix engine.

Every error carries a short machine-readable ``code`` so callers can report
typed failures without matching on message text, and the backup path when
one was written before the failure.
"""


class FixError(Exception):
    """Base class for fix engine failures."""

    code = "fix_error"

    def __init__(self, message: str, backup_path: str = "") -> None:
        super().__init__(message)
        self.backup_path = backup_path


class ValidationError(FixError):
    """The finding's fix payload cannot be previewed or applied."""

    code = "invalid_fix"


class NotFoundError(FixError):
    """Target file or finding missing, with nothing to synthesize it from."""

    code = "not_found"


class FixIOError(FixError):
    """Reading, backing up or writing a file failed."""

    code = "io_error"


class RestartError(FixError):
    """Container did not come back after the fix was written.

    The live file has already been restored to its pre-fix content when
    this is raised.
    """

    code = "restart_failed"
