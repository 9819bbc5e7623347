#!/usr/bin/env python3
import argparse
import contextlib
import functools
import gzip
import io
import json
import os
import socket
import sys
import threading
import time
import traceback
import urllib.parse
import webbrowser
from dataclasses import dataclass
from http.server import ThreadingHTTPServer, SimpleHTTPRequestHandler
from typing import Dict, Mapping, Optional

import brotli

from .build import run_build
from .probe import probe
from .setup_page import SETUP_PAGE

# A dev server for a Flutter web bundle that:
# - Serves the built bundle from ./web with correct MIME types
# - Falls back to web/index.html (SPA routing) or a setup page with a Build button
# - Runs ./flutter_build.sh on POST /api/build and reports the outcome as JSON
# - Disables caching so a fresh build is picked up on reload

WEB_DIR = "web"
INDEX_FILE = "index.html"
BUILD_SCRIPT = "flutter_build.sh"
DEFAULT_PORT = 5000
DEFAULT_HOST = "0.0.0.0"

COMPRESSIBLE_EXTENSIONS = {".html", ".htm", ".css", ".js", ".mjs", ".json", ".svg"}


@dataclass(frozen=True)
class ServerConfiguration:
    """Immutable process-wide settings, fixed at startup."""

    root: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def web_dir(self) -> str:
        return os.path.join(self.root, WEB_DIR)

    @property
    def index_path(self) -> str:
        return os.path.join(self.web_dir, INDEX_FILE)

    @property
    def build_command(self) -> str:
        return os.path.join(self.root, BUILD_SCRIPT)


def config_from_env(root: str = ".", host: str = DEFAULT_HOST, port: Optional[int] = None,
                    environ: Optional[Mapping[str, str]] = None) -> ServerConfiguration:
    """Build the configuration; the port comes from ``port``, then $PORT, then 5000."""
    if environ is None:
        environ = os.environ
    if port is None:
        raw = environ.get("PORT", "").strip()
        if raw:
            try:
                port = int(raw)
            except ValueError:
                raise ValueError(f"PORT must be an integer, got {raw!r}") from None
        else:
            port = DEFAULT_PORT
    return ServerConfiguration(root=os.path.abspath(root), host=host, port=port)


def accepted_encodings(header: str) -> Dict[str, float]:
    """Parse an Accept-Encoding header into a {coding: q-value} map."""
    weights = {}
    for part in header.split(","):
        coding, _, params = part.partition(";")
        coding = coding.strip().lower()
        if not coding:
            continue
        q = 1.0
        for param in params.split(";"):
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        weights[coding] = q
    return weights


class DevHandler(SimpleHTTPRequestHandler):
    # Extend MIME map for the file types a Flutter web build emits
    extensions_map = {
        **getattr(SimpleHTTPRequestHandler, "extensions_map", {}),
        ".js": "application/javascript",
        ".mjs": "application/javascript",
        ".json": "application/json",
        ".wasm": "application/wasm",
        ".otf": "font/otf",
        ".ttf": "font/ttf",
        ".frag": "text/plain",
        "": "application/octet-stream",
    }

    def __init__(self, *args, config: ServerConfiguration, **kwargs):
        # handle() runs inside the base __init__, so config must be set first
        self.config = config
        super().__init__(*args, directory=config.web_dir, **kwargs)

    def end_headers(self):
        # Never cache: the bundle changes underneath us whenever a build runs
        self.send_header("Cache-Control", "no-store, no-cache, must-revalidate, max-age=0")
        self.send_header("Pragma", "no-cache")
        self.send_header("Expires", "0")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET,POST,OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        super().end_headers()

    def log_message(self, fmt, *args):
        sys.stdout.write("[HTTP] " + (fmt % args) + "\n")

    def _request_path(self) -> str:
        return urllib.parse.urlsplit(self.path or "/").path or "/"

    def _send_json(self, status: int, payload: dict, head_only: bool = False):
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if not head_only:
            self.wfile.write(body)

    def _send_bytes(self, data: bytes, ctype: str, head_only: bool = False):
        self.send_response(200)
        self.send_header("Content-Type", ctype)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        if not head_only:
            self.wfile.write(data)

    def _send_internal_error(self, exc: Exception):
        print(f"[HTTP] Error handling request {self._request_path()}: {exc}", file=sys.stderr)
        traceback.print_exc()
        self._send_json(500, {
            "success": False,
            "message": "Internal server error",
            "error": str(exc),
        })

    def resolve_static(self, path: str) -> Optional[str]:
        """Map a request path to a file inside the bundle directory, if any."""
        fs_path = self.translate_path(path)
        root = os.path.realpath(self.config.web_dir)
        real = os.path.realpath(fs_path)
        if real != root and not real.startswith(root + os.sep):
            return None
        if os.path.isdir(real):
            real = os.path.join(real, INDEX_FILE)
        return real if os.path.isfile(real) else None

    def _pick_encoding(self, fs_path: str) -> Optional[str]:
        _, ext = os.path.splitext(fs_path)
        if ext.lower() not in COMPRESSIBLE_EXTENSIONS:
            return None
        weights = accepted_encodings(self.headers.get("Accept-Encoding", "") or "")
        best, best_q = None, 0.0
        # Brotli wins ties
        for coding in ("br", "gzip"):
            q = weights.get(coding, weights.get("*", 0.0))
            if q > best_q:
                best, best_q = coding, q
        return best

    def send_file(self, fs_path: str, head_only: bool = False):
        with open(fs_path, "rb") as f:
            data = f.read()
        encoding = self._pick_encoding(fs_path)
        if encoding == "br":
            data = brotli.compress(data)
        elif encoding == "gzip":
            buf = io.BytesIO()
            with gzip.GzipFile(fileobj=buf, mode="wb", compresslevel=6) as gz:
                gz.write(data)
            data = buf.getvalue()
        self.send_response(200)
        self.send_header("Content-Type", self.guess_type(fs_path))
        if encoding:
            self.send_header("Content-Encoding", encoding)
            self.send_header("Vary", "Accept-Encoding")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        if not head_only:
            self.wfile.write(data)

    def do_OPTIONS(self):
        # CORS preflight support
        self.send_response(204)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_HEAD(self):
        self.handle_get(head_only=True)

    def do_GET(self):
        self.handle_get()

    def handle_get(self, head_only: bool = False):
        requested = self._request_path()
        try:
            if requested == "/api/status":
                report = probe(self.config.web_dir, INDEX_FILE)
                self._send_json(200, report.to_json(), head_only)
                return

            static = self.resolve_static(requested)
            if static:
                self.send_file(static, head_only)
                return

            if requested == "/favicon.ico" and not os.path.isfile(self.config.index_path):
                # Nothing built yet; avoid serving the setup page as an icon
                self.send_response(204)
                self.send_header("Content-Length", "0")
                self.end_headers()
                return

            # Catch-all: the SPA entry point if built, else the setup page
            if os.path.isfile(self.config.index_path):
                self.send_file(self.config.index_path, head_only)
            else:
                self._send_bytes(SETUP_PAGE, "text/html; charset=utf-8", head_only)
        except Exception as e:
            self._send_internal_error(e)

    def do_POST(self):
        requested = self._request_path()
        # The build endpoint takes no body; drain whatever the client sent
        raw_length = self.headers.get("Content-Length") or "0"
        try:
            length = max(int(raw_length), 0)
        except ValueError:
            # The body boundary is unknown, so the connection cannot be reused
            self.close_connection = True
            self._send_json(400, {
                "success": False,
                "message": "Bad request",
                "error": f"Invalid Content-Length: {raw_length!r}",
            })
            return
        if length:
            self.rfile.read(length)

        if requested != "/api/build":
            self._send_json(404, {"success": False, "message": "Not found"})
            return
        print("[BUILD] Received request to build the Flutter web application")
        try:
            result = run_build(self.config.build_command, cwd=self.config.root)
        except Exception as e:
            self._send_internal_error(e)
            return
        self._send_json(200 if result.success else 500, result.to_json())


def find_free_port(preferred: int) -> int:
    if preferred:
        return preferred
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


def open_browser_later(url: str, delay: float = 0.8):
    def _open():
        time.sleep(delay)
        try:
            webbrowser.open(url)
        except webbrowser.Error as e:
            print(f"[SERVER] Could not open browser: {e}")
    threading.Thread(target=_open, daemon=True).start()


def create_server(config: ServerConfiguration) -> ThreadingHTTPServer:
    handler = functools.partial(DevHandler, config=config)
    return ThreadingHTTPServer((config.host, config.port), handler)


def run_server(config: ServerConfiguration, open_browser: bool = False):
    httpd = create_server(config)
    host, port = httpd.server_address[:2]
    print(f"[SERVER] Flutter Web Server running at http://{host}:{port}")
    print(f"[SERVER] Project root: {config.root}")
    if probe(config.web_dir, INDEX_FILE).ready:
        print("[SERVER] Serving the Flutter web application")
    else:
        print("[SERVER] Flutter web application needs to be built. Visit the site to build it.")
    if open_browser:
        local = host if host not in ("0.0.0.0", "") else "localhost"
        open_browser_later(f"http://{local}:{port}/")
    print("Press Ctrl+C to stop.\n")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        httpd.server_close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve the Flutter web build locally.")
    parser.add_argument("-d", "--dir", default=".", help="Project root containing web/ and flutter_build.sh (default: current directory)")
    parser.add_argument("-H", "--host", default=DEFAULT_HOST, help=f"Host/IP to bind (default: {DEFAULT_HOST})")
    parser.add_argument("-p", "--port", type=int, default=None, help=f"Port to bind (default: $PORT or {DEFAULT_PORT}; 0 picks a free port)")
    parser.add_argument("--open", action="store_true", help="Open the browser after startup")
    args = parser.parse_args(argv)

    try:
        config = config_from_env(args.dir, args.host, args.port)
    except ValueError as e:
        parser.error(str(e))
    if not config.port:
        config = ServerConfiguration(config.root, config.host, find_free_port(config.port))
    run_server(config, open_browser=args.open)


if __name__ == "__main__":
    main()
