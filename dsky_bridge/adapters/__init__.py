"""Adapter modules for external integrations."""

from .reentry import CommandSendError, UdpReentryCommandSender, encode_key

__all__ = [
    "CommandSendError",
    "UdpReentryCommandSender",
    "encode_key",
]
