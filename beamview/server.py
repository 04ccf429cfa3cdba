"""
Asset server - serves the in-memory viewer bundle over HTTP.
"""

import html
import logging
import socket
import sys
import urllib.parse
from typing import List, Optional, Tuple

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from . import __version__
from .assets import Asset, AssetTree, clean_path
from .config import ServerConfig

logger = logging.getLogger(__name__)


class RangeNotSatisfiable(ValueError):
    pass


def _etag_matches(asset: Asset, if_none_match: str) -> bool:
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == "*" or candidate == asset.etag:
            return True
    return False


def parse_range(header: str, size: int) -> Optional[Tuple[int, int]]:
    """Parse a single "bytes=" range into inclusive (start, end).

    Returns None for headers we do not honor (other units, multiple
    ranges, garbage), in which case the whole body is sent.
    """
    unit, _, spec = header.partition("=")
    if unit.strip().lower() != "bytes" or "," in spec:
        return None
    first, sep, last = spec.strip().partition("-")
    if not sep or not (first or last):
        return None
    if any(part and not part.isdigit() for part in (first, last)):
        return None

    if not first:
        suffix = int(last)
        if suffix == 0:
            raise RangeNotSatisfiable(header)
        return max(size - suffix, 0), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if end < start:
        return None
    if start >= size:
        raise RangeNotSatisfiable(header)
    return start, min(end, size - 1)


def render_listing(children: List[str]) -> str:
    """Plain <pre> directory listing in the style of a generic file server."""
    lines = ["<!doctype html>", '<meta name="viewport" content="width=device-width">', "<pre>"]
    for name in children:
        href = urllib.parse.quote(name)
        lines.append(f'<a href="{html.escape(href)}">{html.escape(name)}</a>')
    lines.append("</pre>")
    return "\n".join(lines) + "\n"


def _redirect(request: Request, path: str) -> RedirectResponse:
    location = path
    if request.url.query:
        location += "?" + request.url.query
    return RedirectResponse(url=location, status_code=301)


def create_app(tree: AssetTree) -> FastAPI:
    """Build the FastAPI app that answers every GET from the asset tree."""
    # No docs/openapi routes: every path belongs to the bundle.
    app = FastAPI(
        title="beamview",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    def get_asset(path: str, request: Request):
        # Directories are addressed with a trailing slash so relative links in their index resolve.
        if path and not path.endswith("/") and tree.is_dir(path):
            return _redirect(request, request.url.path + "/")
        # Files never are.
        if path.endswith("/") and clean_path(path) in tree:
            return _redirect(request, request.url.path.rstrip("/"))

        asset = tree.resolve(path)
        if asset is None:
            children = tree.listdir(path)
            if children is None:
                raise HTTPException(status_code=404, detail="Not Found")
            return HTMLResponse(render_listing(children))

        headers = {"ETag": asset.etag, "Accept-Ranges": "bytes"}

        if_none_match = request.headers.get("if-none-match")
        if if_none_match and _etag_matches(asset, if_none_match):
            return Response(status_code=304, headers={"ETag": asset.etag})

        range_header = request.headers.get("range")
        if range_header:
            try:
                byte_range = parse_range(range_header, asset.size)
            except RangeNotSatisfiable:
                return Response(
                    status_code=416,
                    headers={"Content-Range": f"bytes */{asset.size}"},
                )
            if byte_range is not None:
                start, end = byte_range
                headers["Content-Range"] = f"bytes {start}-{end}/{asset.size}"
                return Response(
                    content=asset.data[start:end + 1],
                    status_code=206,
                    media_type=asset.content_type,
                    headers=headers,
                )

        return Response(
            content=asset.data,
            media_type=asset.content_type,
            headers=headers,
        )

    return app


def bind_socket(config: ServerConfig) -> socket.socket:
    """Bind the listening socket. Raises OSError if the port is unavailable."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    # On Windows SO_REUSEADDR lets a second process steal a bound port.
    if sys.platform != "win32":
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((config.host, config.port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def serve(app: FastAPI, sock: socket.socket, config: ServerConfig) -> None:
    """Block serving requests on an already bound socket until interrupted."""
    server = uvicorn.Server(
        uvicorn.Config(app, host=config.host, port=config.port, log_level="info")
    )

    logger.info("Serving at %s", config.bind_url)
    logger.info("Press Ctrl+C to stop")
    server.run(sockets=[sock])
