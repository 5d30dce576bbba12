"""Development server for Rookery.

Serves the built site with live reload for local authoring:
- Serves ``public/`` with ``index.html`` for directories and ``.html``
  fallback for extensionless paths; everything else missing is a 404.
- Answers ``/__rookery_reload_check`` with the time of the last successful
  build and injects a polling script into HTML pages.
- Watches ``site/`` and rebuilds on change. Rebuilds are single-flight:
  changes arriving while a rebuild runs are dropped.

Key classes:
- DevServer: Main class for running the development server.
- _ReloadHandler: HTTP request handler serving output and the reload check.
"""

from __future__ import annotations

import functools
import io
import json
import logging
import os
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlsplit

from .build import Builder, BuildStats
from .project import Project
from .watcher import ChangeSet, Watcher

logger = logging.getLogger(__name__)

RELOAD_CHECK_PATH = "/__rookery_reload_check"

RELOAD_SCRIPT = """<script>
  (function() {
    const loadedAt = Date.now() / 1000;
    setInterval(function() {
      fetch('%s')
        .then(r => r.json())
        .then(data => {
          if (data.lastBuild > loadedAt) {
            console.log('Rookery: reloading page...');
            location.reload();
          }
        })
        .catch(() => {});
    }, 1000);
  })();
</script>
""" % RELOAD_CHECK_PATH

NOT_FOUND_HTML = b"<h1>404 Not Found</h1>"


def inject_reload_script(html: str) -> str:
    """Insert the reload script before ``</body>``; other HTML is returned as is."""
    if "</body>" not in html:
        return html
    return html.replace("</body>", f"{RELOAD_SCRIPT}</body>", 1)


def resolve_request_path(output_dir: Path, request_path: str) -> Path | None:
    """Map a request path to a file under ``output_dir``.

    Args:
        output_dir: Directory being served.
        request_path: Raw request path, possibly with a query string.

    Returns:
        The file to serve, or None when nothing matches or the path
        escapes ``output_dir``.
    """
    url_path = unquote(urlsplit(request_path).path)
    root = output_dir.resolve()
    target = (root / url_path.lstrip("/")).resolve()
    if target != root and root not in target.parents:
        return None

    if url_path.endswith("/") or target.is_dir():
        target = target / "index.html"
    if not target.exists():
        html_target = target.with_name(f"{target.name}.html")
        if html_target.is_file():
            target = html_target
    return target if target.is_file() else None


class _ReloadHandler(SimpleHTTPRequestHandler):
    """HTTP request handler for the output directory.

    Attributes:
        dev_server: DevServer providing the build time and reload setting.
    """

    dev_server: DevServer | None = None

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def _respond(self, status: int, content_type: str, body: bytes) -> io.BytesIO:
        self.send_response(status)
        self.send_header("Content-type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        return io.BytesIO(body)

    def send_head(self):
        if urlsplit(self.path).path == RELOAD_CHECK_PATH:
            last_build = self.dev_server.last_build if self.dev_server else 0.0
            payload = json.dumps({"lastBuild": last_build}).encode("utf-8")
            return self._respond(200, "application/json", payload)

        target = resolve_request_path(Path(self.directory), self.path)
        if target is None:
            return self._respond(404, "text/html; charset=utf-8", NOT_FOUND_HTML)

        if target.suffix == ".html":
            content = target.read_bytes().decode("utf-8", errors="replace")
            if self.dev_server is None or self.dev_server.livereload:
                content = inject_reload_script(content)
            return self._respond(200, "text/html; charset=utf-8", content.encode("utf-8"))

        f = open(target, "rb")
        try:
            size = os.fstat(f.fileno()).st_size
            self.send_response(200)
            self.send_header("Content-type", self.guess_type(str(target)))
            self.send_header("Content-Length", str(size))
            self.end_headers()
        except Exception:
            f.close()
            raise
        return f


class DevServer:
    """Development server with live reload functionality.

    Attributes:
        project: Project being served.
        builder: Builder reused for the initial build and every rebuild.
        host: Interface to bind.
        port: Port for the HTTP server.
        livereload: Whether to watch for changes and inject the reload script.
        last_build: Epoch seconds of the last successful build.
    """

    def __init__(
        self,
        project: Project,
        host: str = "localhost",
        port: int = 4000,
        livereload: bool = True,
        builder: Builder | None = None,
    ):
        self.project = project
        self.builder = builder or Builder(project)
        self.host = host
        self.port = port
        self.livereload = livereload
        self.last_build = time.time()
        self._rebuild_lock = threading.Lock()
        self._watcher: Watcher | None = None
        self._httpd: ThreadingHTTPServer | None = None

    def start(self) -> None:  # pragma: no cover - integration path
        print("Building site...")
        self._finish(self.builder.build())
        if self.livereload:
            self._start_watcher()
        self._httpd = self._make_http_server()
        print(f"Serving {self.project.output_dir} at http://{self.host}:{self.port}")
        print("Press Ctrl+C to stop")
        try:
            self._httpd.serve_forever()
        except KeyboardInterrupt:
            print("Server stopped")
        finally:
            self.stop()

    def stop(self) -> None:
        if self._watcher:
            self._watcher.stop()
            self._watcher = None
        if self._httpd:
            self._httpd.server_close()
            self._httpd = None

    def _make_http_server(self) -> ThreadingHTTPServer:
        handler_cls = type("_BoundReloadHandler", (_ReloadHandler,), {"dev_server": self})
        handler = functools.partial(handler_cls, directory=str(self.project.output_dir))
        return ThreadingHTTPServer((self.host, self.port), handler)

    def _start_watcher(self) -> None:
        watcher = Watcher(self.project)
        watcher.on_change(self.on_change)
        watcher.start()
        self._watcher = watcher

    def on_change(self, changes: ChangeSet) -> None:
        """Watcher callback: rebuild in the background unless one is running."""
        if self._rebuild_lock.locked():
            return
        threading.Thread(target=self.rebuild, args=(changes,), daemon=True).start()

    def rebuild(self, changes: ChangeSet | None = None) -> BuildStats | None:
        """Rebuild the site unless another rebuild is in progress.

        Args:
            changes: Change set that triggered the rebuild, for reporting.

        Returns:
            BuildStats of the rebuild, or None when it was suppressed.
        """
        if not self._rebuild_lock.acquire(blocking=False):
            return None
        try:
            count = len(changes) if changes is not None else 0
            print(f"Rebuilding... ({count} files changed)")
            stats = self.builder.build()
            self._finish(stats)
            return stats
        finally:
            self._rebuild_lock.release()

    def _finish(self, stats: BuildStats) -> None:
        if stats.success:
            self.last_build = time.time()
            print(f"Built {stats.files_built} pages in {stats.total_time:.2f}s")
        else:
            print(f"Build failed with {len(stats.errors)} errors")
            for error in stats.errors:
                print(f"  -> {error}")
