from __future__ import annotations


class DevopsCliError(Exception):
    """Base class for errors reported to the user without a traceback."""


class MissingFieldError(DevopsCliError):
    def __init__(self, field: str) -> None:
        super().__init__(f"Missing field {field}")
        self.field = field


class ProviderFilterError(DevopsCliError, ValueError):
    pass


class InvalidQueryTokenError(DevopsCliError, ValueError):
    pass


class TransportError(DevopsCliError):
    pass


class ConfigError(DevopsCliError):
    pass


class TemplateError(DevopsCliError):
    pass


class NoResultsError(DevopsCliError):
    pass


class NothingToDoError(DevopsCliError):
    pass


class TunnelblickError(DevopsCliError):
    pass


class UnsupportedPlatformError(TunnelblickError):
    def __init__(self) -> None:
        super().__init__("Tunnelblick is only supported on macOS")


class ScriptExecutionError(TunnelblickError):
    def __init__(self) -> None:
        super().__init__("Unable to run osascript to control tunnelblick")


class ScriptResponseError(TunnelblickError):
    def __init__(self) -> None:
        super().__init__("Unable to parse response from tunnelblick")


class ScriptNotCompatibleError(TunnelblickError):
    def __init__(self, detail: str = "") -> None:
        message = "The script to control tunnelblick is not compatible with your version"
        super().__init__(f"{message}: {detail}" if detail else message)
