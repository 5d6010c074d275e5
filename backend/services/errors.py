"""
Error types shared by the search pipeline and the HTTP layer.
"""


class ClientInputError(ValueError):
    """The caller sent a request the pipeline cannot act on (maps to 400)."""


class UpstreamModelError(RuntimeError):
    """The language-model call failed. Always absorbed by the intent parser."""


class ProviderError(RuntimeError):
    """The places provider call failed or returned something unusable."""


class ConfigError(RuntimeError):
    """Required configuration is missing or invalid."""
