"""
Domain Errors
Raised by domain services and mapped to HTTP responses at the API edge
"""

from typing import Dict, Optional


class MacroInputsValidationError(ValueError):
    """MacroInputs record is missing fields or carries malformed values"""

    def __init__(self, problems: Dict[str, str]):
        self.problems = dict(problems)
        detail = "; ".join(f"{field}: {msg}" for field, msg in sorted(self.problems.items()))
        super().__init__(f"Invalid macro inputs ({detail})")


class UpstreamFetchError(RuntimeError):
    """No live macro source produced a usable value"""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(message)


class HoldingNotFoundError(KeyError):
    """Holding id not present in the stored portfolio"""

    def __init__(self, holding_id: str):
        self.holding_id = holding_id
        super().__init__(f"Holding not found: {holding_id}")


class PortfolioStoreError(RuntimeError):
    """Stored portfolio record could not be decoded"""
