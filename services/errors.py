"""Error taxonomy for the video pipeline. Each error carries the lower-level diagnostic."""


class PipelineError(Exception):
    """Base for every failure inside one pipeline run."""


class SelectionError(PipelineError):
    pass


class DownloadError(PipelineError):
    pass


class RenderError(PipelineError):
    pass


class AssemblyError(PipelineError):
    pass


class StorageError(PipelineError):
    pass


class EncodeError(Exception):
    """ffmpeg exited non-zero, could not start, or timed out."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}: {self.stderr}"
        return base
