"""
Push notifications to embedded per-camera displays.
"""

from .devices import DeviceLink, DevicePushService

__all__ = ["DeviceLink", "DevicePushService"]
