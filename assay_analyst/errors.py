class AssayAnalystError(Exception):
    """Base exception for assay analysis errors."""
    pass


class DetectorUnavailable(AssayAnalystError):
    """The computer-vision capability is not loaded or not initialised."""
    pass


class InsufficientData(AssayAnalystError):
    """Regression needs at least two committed points that match a shape."""
    pass


class InvalidImportFormat(AssayAnalystError):
    """A persisted model or state file could not be parsed."""
    pass


class UndefinedPrediction(AssayAnalystError):
    """The fitted slope is too close to zero to invert."""
    pass
