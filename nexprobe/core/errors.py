"""Domain-specific errors for nexprobe."""


class NexprobeError(Exception):
    """Base error for nexprobe."""

    step = "nexprobe"


class CatalogLoadError(NexprobeError):
    """Raised when reading chip catalog sources fails."""

    step = "catalog"


class CatalogValidationError(CatalogLoadError):
    """Raised when a chip file does not conform to schema or semantics."""


class UsageError(NexprobeError):
    """Raised on missing or invalid command arguments."""

    step = "argument validation"


class AcquisitionError(NexprobeError):
    """Base firmware acquisition error."""

    step = "acquisition"


class SourceUnavailableError(AcquisitionError):
    """Raised when a required tool, endpoint, or path is missing."""


class NoFilesFoundError(AcquisitionError):
    """Raised when a reachable source holds no matching firmware files."""


class TransferError(AcquisitionError):
    """Raised when every matched firmware transfer failed."""


class ScaffoldError(NexprobeError):
    """Raised when the output directory structure cannot be written."""

    step = "scaffold"
