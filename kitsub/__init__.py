"""
Kitsub tool provisioning.

Locates, downloads, verifies and caches the external media tools
(ffmpeg, ffprobe, mkvmerge, mkvpropedit) that Kitsub drives.
"""

__version__ = "0.1.0"
