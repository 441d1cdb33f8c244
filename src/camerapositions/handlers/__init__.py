"""
Request handlers for the display server routes.
"""

from .api import ConfigHandler, ImageHandler, sanitize_image_name
from .static import BundledAssets, StaticAssetHandler

__all__ = [
    "BundledAssets",
    "StaticAssetHandler",
    "ConfigHandler",
    "ImageHandler",
    "sanitize_image_name",
]
