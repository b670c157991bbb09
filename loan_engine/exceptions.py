"""
Engine Exceptions

Programming/contract errors only. Invalid user input is never raised; it is
returned as a list of ValidationError records (see validation.py).
"""


class LoanEngineError(ValueError):
    """Base class for caller/engine contract violations"""


class UnsupportedFrequency(LoanEngineError):
    """Payment frequency value the engine does not know"""

    def __init__(self, frequency):
        self.frequency = frequency
        super().__init__(f"Unsupported payment frequency: {frequency}")


class UnsupportedConvention(LoanEngineError):
    """Day count convention value the engine does not know"""

    def __init__(self, convention):
        self.convention = convention
        super().__init__(f"Unsupported day count convention: {convention}")


class UnsupportedRoundingMethod(LoanEngineError):
    """Rounding method value the engine does not know"""

    def __init__(self, method):
        self.method = method
        super().__init__(f"Unsupported rounding method: {method}")


class UnsupportedInterestType(LoanEngineError):
    """Interest type value the engine does not know"""

    def __init__(self, interest_type):
        self.interest_type = interest_type
        super().__init__(f"Unsupported interest type: {interest_type}")


class UnsupportedBalloonStrategy(LoanEngineError):
    """Balloon strategy variant the engine does not know"""

    def __init__(self, strategy):
        self.strategy = strategy
        super().__init__(f"Unsupported balloon strategy: {strategy}")
