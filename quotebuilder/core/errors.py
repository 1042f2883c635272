"""Domain exceptions raised on caller mistakes.

Missing or zero pricing inputs are never errors; see ``EngineWarning``.
"""


class QuoteEngineError(Exception):
    """Base class for quote engine caller errors."""


class UnknownLineError(QuoteEngineError, LookupError):
    def __init__(self, line_id: str) -> None:
        self.line_id = line_id
        super().__init__(f"Line '{line_id}' does not exist.")


class InvalidOperationError(QuoteEngineError, ValueError):
    pass
