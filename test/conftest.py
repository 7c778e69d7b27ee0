#
# conftest.py - ROI Tools: pytest configuration file
# Copyright DeGirum Corp. 2025
#
# Contains common pytest configuration and common test fixtures
#
import sys, os, tempfile, pytest, pathlib, json, threading
import socketserver
import http.server

# add current directory to sys.path to debug tests locally without package installation
sys.path.insert(0, os.getcwd())

import roi_tools
import logging

# base path of the fake detection service
service_base_path = "/device-detection"


def pytest_addoption(parser):
    """Add custom command line options for pytest"""

    parser.addoption(
        "--loglevel",
        action="store",
        default=None,
        help="Set log level (e.g. DEBUG, INFO, WARNING)",
    )


def pytest_configure(config):
    """Configure pytest with custom options"""

    loglevel = config.getoption("--loglevel")
    if loglevel:
        roi_tools.logger_add_handler(level=getattr(logging, loglevel.upper(), logging.ERROR))


@pytest.fixture
def temp_dir():
    """Temporary directory fixture with cleanup"""
    with tempfile.TemporaryDirectory() as directory:
        yield pathlib.Path(directory)
        # cleanup happens automatically when the block exits


class ServiceState:
    """Scripted responses and recorded requests of the fake detection service"""

    def __init__(self):
        self.requests: list = []
        self.responses: dict = {}
        self.url = ""
        self.lock = threading.Lock()

    def respond(self, method: str, path: str, *responses):
        """
        Script responses for given method and path (relative to service base path).
        Each response is a (status, body) tuple; the last one repeats forever.
        """
        with self.lock:
            self.responses[(method, path)] = list(responses)

    def next_response(self, method: str, path: str):
        with self.lock:
            script = self.responses.get((method, path))
            if not script:
                return 404, {"error": "not found"}
            return script.pop(0) if len(script) > 1 else script[0]

    def calls(self, method=None, path=None) -> list:
        """Recorded requests as dicts with method, path, headers and body"""
        with self.lock:
            return [
                r
                for r in self.requests
                if (method is None or r["method"] == method)
                and (path is None or r["path"] == path)
            ]


class DetectionServiceHandler(http.server.BaseHTTPRequestHandler):
    """HTTP request handler of the fake detection service"""

    def _handle(self, method: str):
        state: ServiceState = self.server.state  # type: ignore[attr-defined]
        path = self.path
        if path.startswith(service_base_path + "/"):
            path = path[len(service_base_path) + 1 :]

        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length) if length else b""
        with state.lock:
            state.requests.append(
                {
                    "method": method,
                    "path": path,
                    "headers": dict(self.headers),
                    "body": json.loads(raw) if raw else None,
                }
            )

        status, body = state.next_response(method, path)
        if body is None:
            payload = b""
        elif isinstance(body, (bytes, str)):
            payload = body.encode() if isinstance(body, str) else body
        else:
            payload = json.dumps(body).encode()

        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def do_GET(self):
        self._handle("GET")

    def do_POST(self):
        self._handle("POST")

    def do_PUT(self):
        self._handle("PUT")

    def log_message(self, format, *args):
        pass  # Suppress server logging


class _Server(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True


@pytest.fixture
def detection_service():
    """Fake detection service running on a local port in a background thread"""

    with _Server(("127.0.0.1", 0), DetectionServiceHandler) as httpd:
        state = ServiceState()
        httpd.state = state  # type: ignore[attr-defined]
        state.url = (
            f"http://127.0.0.1:{httpd.server_address[1]}{service_base_path}"
        )
        server_thread = threading.Thread(target=httpd.serve_forever, daemon=True)
        server_thread.start()
        try:
            yield state
        finally:
            httpd.shutdown()
            server_thread.join()


@pytest.fixture
def client(detection_service):
    """Detection client connected to the fake detection service, retries without delay"""
    with roi_tools.DetectionClient(
        detection_service.url,
        "dev1",
        token="secret-token",
        retry_policy=roi_tools.RetryPolicy(delay_s=0),
        timeout_s=5,
    ) as c:
        yield c


@pytest.fixture
def status_response():
    """Factory of enveloped detection status responses"""

    def make(enabled: bool, rois=None, **config):
        cfg = {"sensitivity": 1000, "blur": 20, "morphology": 20}
        cfg.update(config)
        if rois is not None:
            cfg["rois"] = rois
        return {
            "data": {
                "data": {
                    "networkId": "net-42",
                    "detectionEnabled": enabled,
                    "config": cfg,
                }
            }
        }

    return make
