import unittest

from agents.dispute_agent import AnalysisError, parse_analysis
from agents.dispute_prompts import analysis_prompt
from consultation_state import ConsultationRecord, DisputeForm, FormValidationError
from tests.helpers import make_form, make_result


class DisputeFormTests(unittest.TestCase):
    def test_symptoms_required(self) -> None:
        with self.assertRaises(FormValidationError):
            make_form(symptoms="   ").validate()

    def test_phone_or_email_required(self) -> None:
        with self.assertRaises(FormValidationError):
            make_form(phone="", email="").validate()
        make_form(phone="", email="me@example.com").validate()
        make_form(phone="010-0000-0000", email="").validate()

    def test_dict_uses_persisted_keys(self) -> None:
        form = make_form()
        data = form.to_dict()
        self.assertEqual(
            set(data), {"role", "issueType", "symptoms", "history", "otherPartyInfo", "phone", "email"}
        )
        self.assertEqual(DisputeForm.from_dict(data), form)

    def test_record_dict_layout(self) -> None:
        record = ConsultationRecord(timestamp=1_700_000_000_000, form_data=make_form(), result=make_result())
        data = record.to_dict()
        self.assertEqual(set(data), {"id", "timestamp", "formData", "result"})
        self.assertEqual(ConsultationRecord.from_dict(data), record)
        self.assertNotEqual(record.id, ConsultationRecord(timestamp=1, form_data=make_form(), result=make_result()).id)


class ParseAnalysisTests(unittest.TestCase):
    def test_parses_fenced_json(self) -> None:
        text = "```json\n" + make_result().model_dump_json() + "\n```"
        self.assertEqual(parse_analysis(text), make_result())

    def test_rejects_invalid_output(self) -> None:
        for text in ("", "not json", '{"coreIssue": "missing flag"}'):
            with self.assertRaises(AnalysisError):
                parse_analysis(text)

    def test_prompt_mentions_form_fields(self) -> None:
        prompt = analysis_prompt(make_form(symptoms="Water stains on the ceiling"))
        self.assertIn("Water stains on the ceiling", prompt)
        self.assertIn("isConsultationPossible", prompt)


if __name__ == "__main__":
    unittest.main()
