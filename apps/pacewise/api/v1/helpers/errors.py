from __future__ import annotations


class PacingError(RuntimeError):
    pass


class ConfigurationError(PacingError):
    """
    Config tab empty, malformed, or without a single usable client.
    Fatal to the whole evaluation.
    """


class ClientConfigError(PacingError):
    """One config row cannot be used; only that client is excluded."""

    def __init__(self, client_name: str | None, reason: str) -> None:
        self.client_name = client_name
        self.reason = reason
        super().__init__(f"{client_name or 'Unnamed client'}: {reason}")


class SourceFetchError(PacingError):
    """One data source failed; it contributes zero rows."""

    def __init__(self, source_name: str, cause: BaseException | str) -> None:
        self.source_name = source_name
        self.cause = cause
        super().__init__(f"Source '{source_name}' failed: {cause}")
