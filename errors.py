"""
Error types for the disease mapping report.
"""


class DiseaseMappingError(Exception):
    """Base class for every failure the report raises on purpose."""


class ConfigError(DiseaseMappingError):
    pass


class RegionMappingError(DiseaseMappingError):
    """Provider regions do not map one-to-one onto the canonical regions."""


class DataValidationError(DiseaseMappingError):
    pass


class UndefinedRateError(DiseaseMappingError):
    """The incidence rate is undefined (zero total population)."""


class GraphFormatError(DiseaseMappingError):
    pass


class ModelFitError(DiseaseMappingError):
    """The inference engine failed; the message is the engine's own."""


class DegenerateMarginalError(DiseaseMappingError):
    """A posterior marginal has no usable density."""
