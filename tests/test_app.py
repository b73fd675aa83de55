# tests/test_app.py
from datetime import datetime
from unittest.mock import patch

import pytest

from daily_dose.app import SessionExitRequested, cmd_history, cmd_pathway, cmd_session, main, run_quiz
from daily_dose.config import Settings
from daily_dose.db import init_db
from daily_dose.models import Question, QuestionSource, QuestionType
from daily_dose.seed import seed_sample
from daily_dose.sessions import get_history, get_open_session


@pytest.fixture
def settings(tmp_db):
    init_db(tmp_db)
    seed_sample(tmp_db)
    return Settings(db_path=tmp_db, user_id="u1", context_id="s1", role="ADMIN")


def question(card_id, qid, answer="b", order=1):
    return Question(
        card_id=card_id, topic_id="t1", question_type=QuestionType.MCQ, prompt=f"{qid}?",
        options=("a", "b", "c"), correct_answer=answer, question_id=qid,
        source=QuestionSource.CONTENT, block_index=1, order=order,
    )


def test_run_quiz_tallies_per_card():
    questions = [question("c1", "q1"), question("c2", "q2", order=2), question("c1", "q3", order=3)]
    with patch("daily_dose.app.Prompt.ask", side_effect=["2", "1", "3"]):
        results = run_quiz(questions)
    assert [r.card_id for r in results] == ["c1", "c2"]
    assert (results[0].correct_count, results[0].question_count) == (1, 2)
    assert results[0].question_ids == ["q1", "q3"]
    assert (results[1].correct_count, results[1].question_count) == (0, 1)


def test_answer_comparison_ignores_case():
    with patch("daily_dose.app.Prompt.ask", return_value="2"):
        (result,) = run_quiz([question("c1", "q1", answer=" B ")])
    assert result.correct_count == 1


def test_quit_during_quiz():
    with patch("daily_dose.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            run_quiz([question("c1", "q1")])


def answer_first_option(prompt, **kwargs):
    return "1" if "choices" in kwargs else ""


def test_cmd_session_completes_the_session(settings):
    with patch("daily_dose.app.Prompt.ask", side_effect=answer_first_option):
        cmd_session(settings)
    history = get_history(settings.db_path, "u1", "s1", datetime.now())
    assert history["completed_sessions"] == 1
    assert history["recent_sessions"][0].questions_attempted == 5
    assert get_open_session(settings.db_path, "u1", "s1") is None


def test_leaving_a_session_keeps_it_open(settings):
    with patch("daily_dose.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            cmd_session(settings)
    assert get_open_session(settings.db_path, "u1", "s1") is not None


def test_pathway_and_history_render(settings):
    cmd_pathway(settings)
    cmd_history(settings)


def test_main_loop(settings):
    with patch("daily_dose.app.get_settings", return_value=settings), \
         patch("daily_dose.app.configure_logging"), \
         patch("daily_dose.app.Prompt.ask", side_effect=["pathway", "bogus", "history", "quit"]) as ask:
        main()
    assert ask.call_count == 4


def test_main_reports_service_errors(settings):
    settings.role = "GP"
    settings.focus_topic_ids = ["t-admin"]
    with patch("daily_dose.app.get_settings", return_value=settings), \
         patch("daily_dose.app.configure_logging"), \
         patch("daily_dose.app.console.print") as printed, \
         patch("daily_dose.app.Prompt.ask", side_effect=["session", "quit"]):
        main()
    messages = " ".join(str(call.args[0]) for call in printed.call_args_list if call.args)
    assert "No Daily Dose cards" in messages
