"""Fatal errors.

Only precondition failures are exceptions. Per-item enrichment problems are
recorded as ``Unresolved`` outcomes (see ``enrich/outcomes.py``) and never
raised past the item boundary.
"""


class BirdbaseError(Exception):
    """Base class for failures that abort a pipeline run."""

    error_code = "BIRDBASE_ERROR"


class ConfigError(BirdbaseError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class ExportNotFoundError(BirdbaseError):
    """Raised when the raw export file does not exist."""

    error_code = "EXPORT_NOT_FOUND"


class ExportFormatError(BirdbaseError):
    """Raised when the raw export is missing columns or has unparseable values."""

    error_code = "EXPORT_FORMAT"


class BiomeLayerError(BirdbaseError):
    """Raised when the biome polygon layer cannot be loaded."""

    error_code = "BIOME_LAYER"


class ReferenceDataError(BirdbaseError):
    """Raised when a configured reference table is missing or malformed."""

    error_code = "REFERENCE_DATA"


class IntegrityError(BirdbaseError):
    """Raised when assembled tables contain a dangling foreign key."""

    error_code = "INTEGRITY"
