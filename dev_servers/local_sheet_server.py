"""
Local collection endpoint that stands in for the spreadsheet web-app.

This server is intended for development usage when the remote sheet is not
available.  It accepts the URL-encoded POST sent by `SheetSyncClient` and
appends one CSV row per submission.

Run it with:

    python -m dev_servers.local_sheet_server

and point the client at it with `SHEET_SYNC_URL=http://127.0.0.1:6113/exec`.
"""

from __future__ import annotations

import csv
import logging
import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Dict, List, Type
from urllib.parse import parse_qs

from dotenv import load_dotenv

logger = logging.getLogger("local_sheet_server")

COLUMNS: List[str] = [
    "timestamp",
    "role",
    "issueType",
    "phone",
    "email",
    "symptoms",
    "history",
    "otherPartyInfo",
    "coreIssue",
    "recommendedScript",
    "isSuccess",
]


def append_row(csv_path: Path, fields: Dict[str, str], lock: threading.Lock) -> None:
    with lock:
        is_new = not csv_path.exists()
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        with csv_path.open("a", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=COLUMNS, extrasaction="ignore")
            if is_new:
                writer.writeheader()
            writer.writerow({column: fields.get(column, "") for column in COLUMNS})


def make_handler(csv_path: Path) -> Type[BaseHTTPRequestHandler]:
    lock = threading.Lock()

    class LocalSheetHandler(BaseHTTPRequestHandler):
        server_version = "LocalSheet/0.1"
        exec_path = "/exec"

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A003
            logger.info("%s - - %s", self.address_string(), format % args)

        def do_POST(self) -> None:  # noqa: N802
            if self.path.rstrip("/") != self.exec_path:
                self.send_error(404, "Not Found")
                return

            length = int(self.headers.get("Content-Length", "0"))
            raw_body = self.rfile.read(length).decode("utf-8", errors="replace")
            fields = {key: values[-1] for key, values in parse_qs(raw_body, keep_blank_values=True).items()}
            if not fields:
                self.send_error(400, "Empty submission")
                return

            try:
                append_row(csv_path, fields, lock)
            except OSError as exc:
                logger.exception("Failed to append submission to %s", csv_path)
                self.send_error(500, str(exc))
                return

            body = b"OK"
            self.send_response(200)
            self.send_header("Content-Type", "text/plain")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

    return LocalSheetHandler


def run_server(host: str, port: int, csv_path: Path) -> None:
    handler_cls = make_handler(csv_path)
    server = ThreadingHTTPServer((host, port), handler_cls)
    logger.info("Local sheet server listening on http://%s:%d/exec, writing %s", host, port, csv_path)
    try:
        server.serve_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown
        logger.info("Shutting down local sheet server.")
    finally:
        server.server_close()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    load_dotenv()

    host = os.getenv("LOCAL_SHEET_HOST", "127.0.0.1")
    port = int(os.getenv("LOCAL_SHEET_PORT", "6113"))
    csv_path = Path(os.getenv("LOCAL_SHEET_CSV", "submissions.csv"))

    run_server(host, port, csv_path)


if __name__ == "__main__":
    main()
