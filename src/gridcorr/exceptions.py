class GridcorrError(Exception):
    """Base class for errors raised by gridcorr."""


class InvalidParameterError(GridcorrError, ValueError):
    """Raised for a non-positive grid size or malformed input features."""


class DegenerateStatisticsError(GridcorrError, ArithmeticError):
    """Raised when a correlation is undefined, e.g. zero standard deviation."""
