"""
Static asset serving.

The app delegates every non-API request to an asset store. The default
serves a directory of files much like Cloudflare Pages does: directories
resolve to their index.html and extensionless paths try "<path>.html".
"""

import logging
from pathlib import Path
from typing import Protocol

from fastapi import Request, Response
from fastapi.responses import FileResponse, PlainTextResponse

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


class AssetStore(Protocol):
    """Anything that can answer a request from static content."""

    async def fetch(self, request: Request) -> Response:
        ...


class DirectoryAssetStore:
    """Serves files from a directory on disk."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory).resolve()

    def resolve(self, path: str) -> Path | None:
        """Map a URL path to a file inside the directory, or None."""
        relative = path.lstrip("/")
        candidate = (self.directory / relative).resolve()

        # Reject anything escaping the asset root ("/../etc/passwd")
        if not candidate.is_relative_to(self.directory):
            return None

        if candidate.is_dir():
            candidate = candidate / INDEX_FILE
        elif not candidate.exists() and not candidate.suffix:
            candidate = candidate.with_suffix(".html")

        if candidate.is_file():
            return candidate
        return None

    async def fetch(self, request: Request) -> Response:
        """Serve the file for a request path."""
        if request.method not in ("GET", "HEAD"):
            return PlainTextResponse("Method Not Allowed", status_code=405)

        file_path = self.resolve(request.url.path)
        if file_path is None:
            return PlainTextResponse("Not Found", status_code=404)
        return FileResponse(file_path)


class EmptyAssetStore:
    """Asset store with no content; every request is a 404."""

    async def fetch(self, request: Request) -> Response:
        return PlainTextResponse("Not Found", status_code=404)
