"""Upload and download engines."""

from .download import DownloadEngine
from .upload import UploadEngine

__all__ = ["DownloadEngine", "UploadEngine"]
