import io
import threading
import unittest
from contextlib import redirect_stdout
from unittest import mock

import main
from persistence.errors import SyncNetworkFailure
from persistence.outcome_recorder import OutcomeRecorder
from persistence.record_store import LocalRecordStore
from persistence.storage_backend import MemoryStorageBackend
from tests.helpers import GatedSync, make_form, make_result


class FakeAgent:
    def analyze(self, form):
        return make_result()


class ConsultCommandTests(unittest.TestCase):
    def test_prompt_returns_while_outcome_is_still_recording(self) -> None:
        gate = threading.Event()
        store = LocalRecordStore(MemoryStorageBackend())
        recorder = OutcomeRecorder(store=store, sync_client=GatedSync(gate, SyncNetworkFailure()))
        output = io.StringIO()

        with mock.patch.object(main, "_read_form", return_value=make_form()), redirect_stdout(output):
            pending = main._consult(FakeAgent(), recorder)
            self.assertTrue(pending.is_alive())
            self.assertIn("Core issue", output.getvalue())
            self.assertNotIn("Warning", output.getvalue())

            gate.set()
            pending.join(timeout=5)

        self.assertFalse(pending.is_alive())
        self.assertIn("Warning: [Server submission failed] Please check your network connection.", output.getvalue())
        self.assertEqual(len(store.list()), 1)

    def test_rejected_form_records_nothing(self) -> None:
        recorder = mock.Mock(spec=OutcomeRecorder)
        agent = mock.Mock()
        agent.analyze.side_effect = main.FormValidationError("Please describe the symptoms and current situation.")

        with mock.patch.object(main, "_read_form", return_value=make_form(symptoms="")), redirect_stdout(io.StringIO()):
            self.assertIsNone(main._consult(agent, recorder))
        recorder.dispatch.assert_not_called()


if __name__ == "__main__":
    unittest.main()
