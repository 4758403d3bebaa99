"""Object-storage fallback adapters."""

from __future__ import annotations

from .storage import create_upload_function, guess_content_type, upload_file_s3

__all__ = ["create_upload_function", "guess_content_type", "upload_file_s3"]
