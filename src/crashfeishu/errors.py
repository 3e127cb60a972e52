"""Base exceptions for the crashfeishu event listener."""


class CrashFeishuError(Exception):
    """Base exception for all crashfeishu errors."""

    pass


class TokenSetError(CrashFeishuError):
    """Token string could not be decoded or encoded."""

    pass


class ProtocolError(CrashFeishuError):
    """Event listener channel is unusable (fatal for the process)."""

    pass


class ChannelClosedError(ProtocolError):
    """Supervisor closed the input stream."""

    pass


class NotifyError(CrashFeishuError):
    """Alert could not be delivered to the notification sink."""

    pass


class ConfigError(CrashFeishuError):
    """Configuration value is unusable."""

    pass
