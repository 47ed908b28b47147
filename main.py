"""
Command line interface for the dispute consultation service.

Loads settings from environment variables (via `.env`), creates a DisputeAgent
and an OutcomeRecorder, and enters an interactive loop:

  consult            fill in a form, analyse it and record the outcome
  history [search]   list saved consultations, newest first
  delete <id>        remove a saved consultation
  quit               exit
"""

import logging
import threading
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv

from agents import AnalysisError, DisputeAgent
from consultation_state import DisputeForm, FormValidationError, IssueType, UserRole
from persistence import OutcomeRecorder, RecordStoreError, build_outcome_recorder

# --- Logging configuration ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Longest wait for unfinished background saves on exit.
SAVE_GRACE_SECONDS = 60.0


def _choose(label: str, options: list) -> str:
    for idx, option in enumerate(options, start=1):
        print(f"  {idx}. {option.value}")
    raw = input(f"{label} [1-{len(options)}]: ").strip()
    try:
        return options[int(raw) - 1].value
    except (ValueError, IndexError):
        return options[0].value


def _read_form() -> DisputeForm:
    return DisputeForm(
        role=_choose("Role", list(UserRole)),
        issue_type=_choose("Issue type", list(IssueType)),
        symptoms=input("Symptoms: ").strip(),
        history=input("History: ").strip(),
        other_party_info=input("Other party's position: ").strip(),
        phone=input("Phone: ").strip(),
        email=input("Email: ").strip(),
    )


def _print_warning(warning: str) -> None:
    print(f"\nWarning: {warning}\n")


def _consult(agent: DisputeAgent, recorder: OutcomeRecorder) -> Optional[threading.Thread]:
    form = _read_form()
    try:
        result = agent.analyze(form)
    except (FormValidationError, AnalysisError) as exc:
        print(f"{exc}\n")
        return None

    if result.isConsultationPossible:
        print(f"\nCore issue:\n{result.coreIssue}\n")
        print(f"Responsibility:\n{result.responsibilityJudgment}\n")
        print(f"Recommended response:\n{result.recommendedScript}\n")
    else:
        print(f"\n{result.refusalReason}\n")

    return recorder.dispatch(form, result, on_warning=_print_warning)


def _history(recorder: OutcomeRecorder, search: str) -> None:
    records = recorder.store.history(search or None)
    if not records:
        print("No saved consultations.\n")
        return
    for record in records:
        when = datetime.fromtimestamp(record.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        print(f"{record.id}  {when}  {record.form_data.issue_type}  {record.result.coreIssue[:60]}")
    print()


def main() -> None:
    """Run the command line loop for the consultation service."""
    logger.info("Loading environment variables from .env file...")
    load_dotenv()

    try:
        agent = DisputeAgent()
        recorder = build_outcome_recorder()
    except Exception as exc:
        logger.exception("Failed to initialize the consultation service: %s", exc)
        return

    print(
        "\nWelcome to the plumbing dispute consultation service!\n"
        "Commands: consult, history [search], delete <id>, quit\n"
    )

    saves: List[threading.Thread] = []
    while True:
        try:
            line = input("> ").strip()
        except EOFError:
            logger.info("EOF received; exiting.")
            break

        if not line:
            continue
        command, _, argument = line.partition(" ")
        command = command.lower()
        if command in {"quit", "exit", "q"}:
            logger.info("User requested exit.")
            break

        try:
            if command == "consult":
                pending = _consult(agent, recorder)
                if pending is not None:
                    saves.append(pending)
            elif command == "history":
                _history(recorder, argument.strip())
            elif command == "delete" and argument.strip():
                recorder.store.delete(argument.strip())
                print("Deleted.\n")
            else:
                print("Unknown command.\n")
        except RecordStoreError as exc:
            print(f"{exc.user_message}\n")
        except Exception as exc:
            logger.exception("Error while processing command: %s", exc)
            print(f"An error occurred: {exc}\n")

    for save in saves:
        save.join(timeout=SAVE_GRACE_SECONDS)
    logger.info("Session ended. Goodbye!")
    print("Goodbye!")


if __name__ == "__main__":
    main()
