"""
Kouban Custom Exceptions

Exception hierarchy for the breakdown pipeline. Per-chunk oracle errors are
recovered inside the orchestrator; the remaining errors reach the caller.
"""


class KoubanError(Exception):
    """Base exception for all Kouban errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(KoubanError):
    """Raised when there's an issue with configuration."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""
    pass


# =============================================================================
# INPUT / CLASSIFICATION ERRORS
# =============================================================================

class InputEmptyError(KoubanError):
    """Raised when there is no usable text to break down."""

    def __init__(self, message: str = "No usable text after parsing"):
        super().__init__(message)


class NotAScriptError(KoubanError):
    """Raised when the gating sample is classified as non-script content."""

    def __init__(self, reason: str = None, source: str = "roster"):
        message = f"Input does not look like a script: {reason or 'classified as non-script'}"
        super().__init__(message, {"source": source})
        self.reason = reason


# =============================================================================
# ORACLE ERRORS
# =============================================================================

class OracleError(KoubanError):
    """Base exception for extraction oracle errors."""
    pass


class OracleCallError(OracleError):
    """Raised on transport failure or a non-success oracle response."""

    def __init__(self, provider: str, reason: str):
        message = f"Oracle '{provider}' call failed: {reason}"
        super().__init__(message, {"provider": provider, "reason": reason})
        self.provider = provider
        self.reason = reason


class ContentBlockedError(OracleCallError):
    """Raised when the provider refuses the content on policy grounds."""

    def __init__(self, provider: str, reason: str):
        super().__init__(provider, f"content blocked ({reason})")
        self.is_content_block = True


class OracleSchemaError(OracleError):
    """Raised when an oracle response cannot be parsed into the expected shape."""

    def __init__(self, reason: str, raw: str = None):
        details = {"reason": reason}
        if raw is not None:
            details["raw_preview"] = raw[:200]
        super().__init__(f"Malformed oracle response: {reason}", details)
        self.reason = reason


# =============================================================================
# PIPELINE ERRORS
# =============================================================================

class PipelineError(KoubanError):
    """Base exception for pipeline errors."""
    pass


class AllChunksFailedError(PipelineError):
    """Raised when no chunk produced a usable extraction result."""

    def __init__(self, total: int, failures: dict = None):
        message = f"All {total} chunk(s) failed extraction"
        super().__init__(message, {"total": total, "failures": failures or {}})
        self.total = total
