class ReflectScanError(Exception):
    """Base class for every error raised by reflectscan."""


class ConfigError(ReflectScanError):
    pass


class InputError(ReflectScanError):
    pass


class TransportError(ReflectScanError):
    """A request never produced a response (timeout, refused, proxy/TLS failure)."""
