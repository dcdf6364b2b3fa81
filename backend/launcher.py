"""Run the site layout API locally and open its interactive docs.

    python launcher.py [--port 8000] [--host 127.0.0.1] [--no-browser]
"""

from __future__ import annotations

import argparse
import logging
import socket
import threading
import time
import webbrowser

import uvicorn

logger = logging.getLogger("sitegen.launcher")


def pick_port(host: str) -> int:
    """Ask the OS for an unused port on ``host``."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


def wait_and_open(host: str, port: int, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            socket.create_connection((host, port), timeout=0.2).close()
        except OSError:
            time.sleep(0.1)
            continue
        webbrowser.open(f"http://{host}:{port}/docs")
        return
    logger.warning("Server did not come up within %.0f s; not opening a browser", timeout)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Site layout generator API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=0, help="0 picks a free port")
    parser.add_argument("--no-browser", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    port = args.port or pick_port(args.host)
    logger.info("Serving on http://%s:%d (Ctrl+C to stop)", args.host, port)

    if not args.no_browser:
        threading.Thread(target=wait_and_open, args=(args.host, port), daemon=True).start()
    uvicorn.run("sitegen.main:app", host=args.host, port=port, log_level="info")


if __name__ == "__main__":
    main()
