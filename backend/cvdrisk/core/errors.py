"""Exception taxonomy for the risk engine.

All errors derive from ValueError so callers that already guard calculator
calls with ``except ValueError`` keep working. Messages are written for direct
display to a clinician.
"""


class RiskEngineError(ValueError):
    """Base class for risk engine errors."""


class InvalidInputError(RiskEngineError):
    """A field is present but malformed or non-numeric."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"{field} must be a valid number")


class MissingInputError(RiskEngineError):
    """A field required by a calculator is absent."""

    def __init__(self, field: str, calculator: str | None = None) -> None:
        self.field = field
        self.calculator = calculator
        if calculator:
            message = f"{field} is required for {calculator}"
        else:
            message = f"{field} is required"
        super().__init__(message)


class UnsupportedConversionError(RiskEngineError):
    """No conversion is registered for the requested unit pair."""

    def __init__(self, quantity: str, from_unit: str, to_unit: str) -> None:
        self.quantity = quantity
        self.from_unit = from_unit
        self.to_unit = to_unit
        super().__init__(
            f"No conversion available for {quantity} from {from_unit} to {to_unit}"
        )


class RangeConfigurationError(RiskEngineError):
    """A physiological range definition is internally inconsistent."""
