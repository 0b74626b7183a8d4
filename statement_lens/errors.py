class StatementLensError(Exception):
    """Base class for failures raised by the analysis pipeline."""


class MalformedSpreadsheet(StatementLensError, ValueError):
    pass


class NoHeaderRow(MalformedSpreadsheet):
    pass


class ValidationError(StatementLensError, ValueError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class AnalysisError(StatementLensError, RuntimeError):
    pass
