"""
=============================================================================
CONTENT TYPES
=============================================================================

The display server serves a closed set of content:

    ┌──────────────────────┬────────────────────────────────────────────┐
    │  Resource            │  Content-Type                              │
    ├──────────────────────┼────────────────────────────────────────────┤
    │  index.html          │  text/html                                 │
    │  styles.css          │  text/css                                  │
    │  display.js          │  application/javascript                    │
    │  /api/config         │  application/json                          │
    │  stored *.png        │  image/png                                 │
    │  any other image     │  image/jpeg                                │
    └──────────────────────┴────────────────────────────────────────────┘

Stored images are either re-encoded PNGs or whatever the editor handed
over unchanged, which in practice is a JPEG from a camera or phone. So
anything that is not a ".png" is labelled JPEG rather than sniffed.

=============================================================================
"""

HTML = "text/html"
CSS = "text/css"
JAVASCRIPT = "application/javascript"
JSON = "application/json"
PNG = "image/png"
JPEG = "image/jpeg"


# Bundled display assets, keyed by file name inside the package web/ dir.
ASSET_TYPES = {
    "index.html": HTML,
    "styles.css": CSS,
    "display.js": JAVASCRIPT,
}


def image_content_type(filename: str) -> str:
    """
    Infer the Content-Type of a stored image from its name.

    Args:
        filename: Sanitized image filename.

    Returns:
        "image/png" for ".png" names (any case), otherwise "image/jpeg".
    """
    if filename.lower().endswith(".png"):
        return PNG
    return JPEG
