from .client import AsyncB2Client as B2Client

__all__ = ["B2Client"]
