"""
Shellgate - Error taxonomy

Every fatal condition carries a message that is safe to show to the caller.
Internal detail stays in the exception chain and the server log.
"""


class ShellgateError(Exception):
    """Base class for all Shellgate errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ShellgateError):
    """The profile has no usable credential. Fatal, never retried."""


class NoCredentialConfigured(ConfigurationError):
    def __init__(self, message: str = "No password configured."):
        super().__init__(message)


class NoUsableKey(ConfigurationError):
    def __init__(self, message: str = "No valid SSH keys found."):
        super().__init__(message)


class NoAuthMethodConfigured(ConfigurationError):
    def __init__(self, message: str = "No authentication method configured."):
        super().__init__(message)


class DecryptError(ShellgateError):
    """A stored secret could not be decrypted"""


class ProfileNotFound(ShellgateError):
    def __init__(self, message: str = "Connection not found. Please check your connection settings."):
        super().__init__(message)


class ProfileForbidden(ShellgateError):
    def __init__(self, message: str = "Not authorized to access this connection."):
        super().__init__(message)


class ConnectError(ShellgateError):
    """Transport or authentication failure while connecting"""


class AuthenticationRejected(ConnectError):
    """The remote host rejected the offered credential"""


class ShellOpenError(ShellgateError):
    """The remote host refused to open an interactive shell"""


class FrameError(ShellgateError):
    """An inbound frame could not be parsed"""


class ChannelClosed(Exception):
    """The client side went away. A normal teardown trigger, not a failure."""
