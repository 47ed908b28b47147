import csv
import tempfile
import threading
import unittest
from http.server import ThreadingHTTPServer
from pathlib import Path

import requests

from dev_servers.local_sheet_server import COLUMNS, make_handler
from persistence.errors import SyncFailed
from persistence.sheet_client import DeliveryMode, SheetSyncClient, SheetSyncConfig
from tests.helpers import make_form, make_result


class LocalSheetServerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.csv_path = Path(self._tmp.name) / "rows.csv"
        self.server = ThreadingHTTPServer(("127.0.0.1", 0), make_handler(self.csv_path))
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        host, port = self.server.server_address[:2]
        self.base_url = f"http://{host}:{port}"

    def tearDown(self) -> None:
        self.server.shutdown()
        self.server.server_close()
        self.thread.join(timeout=5)
        self._tmp.cleanup()

    def _client(self, path: str) -> SheetSyncClient:
        config = SheetSyncConfig(
            endpoint_url=f"{self.base_url}{path}",
            timeout_seconds=5,
            max_retries=0,
            delivery_mode=DeliveryMode.ACKNOWLEDGED,
            timezone="UTC",
        )
        session = requests.Session()
        session.trust_env = False
        return SheetSyncClient(config=config, session=session, is_online=lambda: True)

    async def test_submission_appends_csv_row(self) -> None:
        await self._client("/exec").send(make_form(email=""), make_result())
        await self._client("/exec").send(make_form(symptoms="Second"), make_result(isConsultationPossible=False))

        with self.csv_path.open(newline="", encoding="utf-8") as handle:
            rows = list(csv.DictReader(handle))
        self.assertEqual(len(rows), 2)
        self.assertEqual(list(rows[0]), COLUMNS)
        self.assertEqual(rows[0]["email"], "not provided")
        self.assertEqual(rows[0]["isSuccess"], "analysis succeeded")
        self.assertEqual(rows[1]["symptoms"], "Second")
        self.assertEqual(rows[1]["isSuccess"], "analysis failed")

    async def test_unknown_path_is_rejected_when_acknowledged(self) -> None:
        with self.assertRaises(SyncFailed):
            await self._client("/nope").send(make_form(), make_result())
        self.assertFalse(self.csv_path.exists())


if __name__ == "__main__":
    unittest.main()
