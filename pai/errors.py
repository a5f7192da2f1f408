"""Error types raised across PAI."""


class PaiError(Exception):
    """Base class for all PAI errors."""

    prefix = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"


class UnknownSourceKindError(PaiError):
    """A source kind string did not name a supported platform."""

    def __init__(self, value: str):
        super().__init__(value)
        self.value = value

    def __str__(self) -> str:
        return f"Unknown source kind: {self.value}"


class InvalidArgumentError(PaiError):
    prefix = "Invalid argument"


class StorageError(PaiError):
    prefix = "Storage error"


class FetchError(PaiError):
    prefix = "Fetch error"


class ParseError(PaiError):
    prefix = "Parse error"


class ConfigError(PaiError):
    prefix = "Config error"


class PaiIOError(PaiError):
    prefix = "IO error"
