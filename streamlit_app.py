"""
Streamlit entry point for the dispute consultation form.

Shows the analysis as soon as it arrives and records the outcome to the device
history and the remote sheet in the background. Sink failures surface as a
warning below the result on the next rerun, never as an error in place of it.
"""

from __future__ import annotations

import logging
from datetime import datetime

import streamlit as st
from dotenv import load_dotenv

from agents import AnalysisError, DisputeAgent
from consultation_state import AnalysisResult, ConsultationRecord, DisputeForm, FormValidationError, IssueType, UserRole
from persistence import OutcomeRecorder, RecordStoreError, build_outcome_recorder

# Ensure environment variables from .env are loaded before instantiating the agent.
load_dotenv()

LOGGER = logging.getLogger(__name__)

RESULT_SECTIONS = (
    ("Core issue", "coreIssue"),
    ("Technical estimation", "technicalEstimation"),
    ("Responsibility", "responsibilityJudgment"),
    ("Legal basis", "legalBasis"),
    ("Precedents and similar cases", "supremeCourtPrecedent"),
    ("Recommended response", "recommendedScript"),
    ("Suhoon Line solution", "suhoonSolution"),
)


@st.cache_resource(show_spinner=False)
def _get_agent() -> DisputeAgent:
    """Create a singleton DisputeAgent per Streamlit process."""
    return DisputeAgent()


@st.cache_resource(show_spinner=False)
def _get_recorder() -> OutcomeRecorder:
    return build_outcome_recorder()


def _init_session_state() -> None:
    """Initialize keys stored in st.session_state."""
    if "result" not in st.session_state:
        st.session_state.result = None
    if "save_warnings" not in st.session_state:
        st.session_state.save_warnings = []


def _render_result(result: AnalysisResult) -> None:
    if not result.isConsultationPossible:
        st.info(result.refusalReason or "This request could not be analysed.")
        return
    for title, field_name in RESULT_SECTIONS:
        value = getattr(result, field_name)
        if value:
            st.subheader(title)
            st.markdown(value)
    st.caption(
        "This opinion is AI-generated reference material and does not replace advice from a lawyer "
        "or a licensed technician."
    )


def _render_form() -> DisputeForm | None:
    with st.form("consultation"):
        role = st.selectbox("Your role", [item.value for item in UserRole], index=2)
        issue_type = st.selectbox("Issue type", [item.value for item in IssueType], index=1)
        symptoms = st.text_area("Symptoms and current situation *")
        history = st.text_area("Construction date, length of residence, etc.")
        other_party = st.text_area("Relationship with the other party and their claims")
        phone = st.text_input("Phone")
        email = st.text_input("Email")
        submitted = st.form_submit_button("Request analysis", use_container_width=True)
    if not submitted:
        return None
    return DisputeForm(
        role=role,
        issue_type=issue_type,
        symptoms=symptoms,
        history=history,
        other_party_info=other_party,
        phone=phone,
        email=email,
    )


def _render_consultation() -> None:
    left, right = st.columns([5, 7])
    with left:
        st.subheader("Request a consultation")
        form = _render_form()

    with right:
        if form is not None:
            try:
                form.validate()
                with st.spinner("Searching legal and technical databases..."):
                    st.session_state.result = _get_agent().analyze(form)
                st.session_state.save_warnings = []
            except FormValidationError as exc:
                st.error(str(exc))
                return
            except AnalysisError as exc:
                LOGGER.exception("Analysis failed: %s", exc)
                st.error(exc.user_message)
                return

        result = st.session_state.result
        if result is None:
            st.caption("No analysis yet. Fill in the form and request an analysis.")
            return
        _render_result(result)

        if form is not None:
            # The callback runs on a worker thread, so it only touches the plain list.
            _get_recorder().dispatch(form, result, on_warning=st.session_state.save_warnings.append)
        for warning in st.session_state.save_warnings:
            st.warning(warning)


def _format_timestamp(record: ConsultationRecord) -> str:
    return datetime.fromtimestamp(record.timestamp / 1000).strftime("%Y-%m-%d %H:%M")


def _render_history() -> None:
    store = _get_recorder().store
    st.subheader("Consultation history")
    st.caption("Past consultations saved on this device.")
    search = st.text_input("Search symptoms, type or core issue")
    records = store.history(search)
    if not records:
        st.caption("No saved consultations.")
        return
    for record in records:
        label = f"{_format_timestamp(record)} · {record.form_data.issue_type} · {record.form_data.role}"
        with st.expander(label):
            st.markdown(record.form_data.symptoms)
            _render_result(record.result)
            if st.button("Delete", key=f"delete-{record.id}"):
                try:
                    store.delete(record.id)
                except RecordStoreError as exc:
                    st.error(exc.user_message)
                else:
                    st.rerun()


def main() -> None:
    st.set_page_config(
        page_title="Dispute Consultation",
        layout="wide",
    )

    st.title("Plumbing Dispute Consultation")
    _init_session_state()

    view = st.sidebar.radio("View", ["Consultation", "History"])
    if view == "History":
        _render_history()
        return

    try:
        _get_agent()
    except Exception as exc:  # pragma: no cover - defensive guard for UI
        LOGGER.exception("Streamlit failed to initialize DisputeAgent: %s", exc)
        st.error(
            "Failed to initialize the analysis agent. "
            "Verify API keys in your environment and restart the app.\n\n"
            f"Details: {exc}"
        )
        return

    _render_consultation()


if __name__ == "__main__":
    main()
