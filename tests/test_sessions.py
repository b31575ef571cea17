import threading
from datetime import timedelta

import pytest
from sqlalchemy import update

from interview_agent.errors import (AgentNotFound, AgentNotFoundOrUnpublished, FollowUpNotAllowed,
                                    InvalidQuestionForFollowUp, QuestionNotFound, SessionClosed,
                                    SessionNotFound, Unauthorized)
from interview_agent.extensions import db
from interview_agent.models.base import utcnow
from interview_agent.models.interview import Interview
from interview_agent.models.response import InterviewResponse
from interview_agent.services import agents, questions, sessions, storage
from interview_agent.services.followup import FALLBACK_FOLLOW_UP

from conftest import KEY_POINTS


def _rubric(score, covered=None):
    covered = KEY_POINTS[:2] if covered is None else covered
    return '{"score": %s, "feedback": "Reasonable answer", "coveredPoints": %s}' % (
        score, "[" + ", ".join('"%s"' % p for p in covered) + "]")


@pytest.fixture
def started(published_agent):
    result = sessions.start_session(published_agent["agent_id"], " Ada ", "ada@example.com ")
    return dict(published_agent, interview_id=result["interview_id"], start=result)


def _interview(interview_id):
    return db.session.get(Interview, interview_id)


def test_start_snapshots_questions_and_hides_answers(started):
    start = started["start"]
    assert start["agent_name"] == "Python Screen"
    assert [q["id"] for q in start["questions"]] == [started["mcq_id"], started["subjective_id"]]
    for q in start["questions"]:
        assert "correct_option" not in q
        assert "key_points" not in q

    interview = _interview(started["interview_id"])
    assert interview.candidate_name == "Ada"
    assert interview.status == "in_progress"
    assert interview.phase == "intro_pending"
    assert interview.total_score == 0
    assert interview.max_score == 12


def test_start_by_link(published_agent):
    result = sessions.start_session_by_link(published_agent["link"], "Ada", "ada@example.com")
    assert _interview(result["interview_id"]).agent_id == published_agent["agent_id"]


def test_start_rejects_unpublished_and_unknown(creator_id, published_agent):
    agents.unpublish_agent(creator_id, published_agent["agent_id"])
    with pytest.raises(AgentNotFoundOrUnpublished):
        sessions.start_session(published_agent["agent_id"], "Ada", "ada@example.com")
    with pytest.raises(AgentNotFoundOrUnpublished):
        sessions.start_session_by_link("nosuchlink", "Ada", "ada@example.com")


def test_full_interview_scores_mcq_and_subjective(started, llm_stub):
    iid = started["interview_id"]
    llm_stub.queue(_rubric(7))

    sessions.submit_intro(iid, "Hi, I write Python.")
    assert _interview(iid).phase == "questioning"

    assert sessions.submit_answer(iid, started["mcq_id"], "1") == {"acknowledged": True}
    assert sessions.submit_answer(iid, started["subjective_id"], "A closure captures...") == {"acknowledged": True}

    interview = sessions.complete_session(iid, recording_url="https://cdn.example.com/rec.webm")
    assert interview.status == "completed"
    assert interview.phase == "completed"
    assert interview.completed_at is not None
    assert interview.total_score == 9
    assert interview.max_score == 12
    assert interview.recording_url == "https://cdn.example.com/rec.webm"

    rows = {r.question_id: r for r in InterviewResponse.query.filter_by(interview_id=iid)}
    assert rows[started["mcq_id"]].is_correct is True
    assert rows[started["mcq_id"]].score == 2
    assert rows[started["subjective_id"]].score == 7
    assert rows[started["subjective_id"]].evaluation_feedback == "Reasonable answer"
    assert llm_stub.calls[0]["temperature"] == 0.3


def test_wrong_mcq_answer_scores_zero(started):
    iid = started["interview_id"]
    sessions.submit_answer(iid, started["mcq_id"], "3")
    row = InterviewResponse.query.filter_by(interview_id=iid).one()
    assert row.is_correct is False
    assert row.score == 0
    assert _interview(iid).total_score == 0


def test_evaluation_failure_records_zero_and_fallback(started, llm_stub):
    iid = started["interview_id"]
    llm_stub.queue("not json at all")
    assert sessions.submit_answer(iid, started["subjective_id"], "something") == {"acknowledged": True}
    row = InterviewResponse.query.filter_by(interview_id=iid).one()
    assert row.score == 0
    assert row.evaluation_feedback.startswith("Error evaluating response")


def test_malformed_llm_payload_records_zero_and_fallback(ctx, started, monkeypatch):
    from interview_agent.services import llm

    class Reply:
        status_code = 200
        headers = {}
        text = ""

        def json(self):
            return {"choices": [{"message": "text"}]}

    monkeypatch.setattr(llm.requests, "post", lambda *a, **kw: Reply())
    monkeypatch.setattr(llm.time, "sleep", lambda s: None)
    iid = started["interview_id"]
    assert sessions.submit_answer(iid, started["subjective_id"], "something") == {"acknowledged": True}
    row = InterviewResponse.query.filter_by(interview_id=iid).one()
    assert row.score == 0
    assert row.evaluation_feedback.startswith("Error evaluating response")
    assert _interview(iid).phase == "questioning"


def test_max_score_is_fixed_at_start(creator_id, started):
    questions.update_question(creator_id, started["subjective_id"], marks=20)
    assert _interview(started["interview_id"]).max_score == 12
    assert agents.get_agent(creator_id, started["agent_id"])["total_marks"] == 22


def test_retried_answer_is_not_counted_twice(started, llm_stub):
    iid = started["interview_id"]
    llm_stub.queue(_rubric(7), _rubric(7))
    sessions.submit_answer(iid, started["subjective_id"], "answer")
    sessions.submit_answer(iid, started["subjective_id"], "answer")
    assert _interview(iid).total_score == 7
    assert InterviewResponse.query.filter_by(interview_id=iid).count() == 1


def test_weaker_reevaluation_keeps_best_score(started, llm_stub):
    iid = started["interview_id"]
    llm_stub.queue(_rubric(7), _rubric(4))
    sessions.submit_answer(iid, started["subjective_id"], "first answer")
    sessions.submit_answer(iid, started["subjective_id"], "second answer")
    row = InterviewResponse.query.filter_by(interview_id=iid).one()
    assert row.score == 7
    assert row.candidate_answer == "second answer"
    assert _interview(iid).total_score == 7


def test_better_reanswer_adds_only_the_difference(started, llm_stub):
    iid = started["interview_id"]
    llm_stub.queue(_rubric(4), _rubric(9))
    sessions.submit_answer(iid, started["subjective_id"], "first")
    sessions.submit_answer(iid, started["subjective_id"], "second")
    assert _interview(iid).total_score == 9


def test_answer_for_question_outside_session(creator_id, started):
    iid = started["interview_id"]
    added = questions.create_question(
        creator_id, started["agent_id"], "mcq", question_text="Added later?",
        marks=1, options=["a", "b", "c", "d"], correct_option=0)
    with pytest.raises(QuestionNotFound):
        sessions.submit_answer(iid, added.id, "0")
    with pytest.raises(QuestionNotFound):
        sessions.submit_answer(iid, 999999, "0")
    assert _interview(iid).total_score == 0


def test_unknown_session(ctx):
    with pytest.raises(SessionNotFound):
        sessions.submit_answer(424242, 1, "0")
    with pytest.raises(SessionNotFound):
        sessions.complete_session(424242)


def test_closed_session_rejects_answers(started):
    iid = started["interview_id"]
    sessions.complete_session(iid)
    with pytest.raises(SessionClosed):
        sessions.submit_answer(iid, started["mcq_id"], "1")
    with pytest.raises(SessionClosed):
        sessions.submit_intro(iid, "late intro")
    assert _interview(iid).total_score == 0


def test_complete_is_idempotent(started):
    iid = started["interview_id"]
    sessions.submit_answer(iid, started["mcq_id"], "1")
    first = sessions.complete_session(iid, recording_url="https://cdn.example.com/a.webm")
    assert first.total_score == 2
    again = sessions.complete_session(iid)
    assert again.status == "completed"
    assert again.total_score == 2
    assert again.recording_url == "https://cdn.example.com/a.webm"


def test_abandoned_session_cannot_complete(started):
    iid = started["interview_id"]
    sessions.abandon_session(iid)
    assert _interview(iid).phase == "abandoned"
    with pytest.raises(SessionClosed):
        sessions.complete_session(iid)
    with pytest.raises(SessionClosed):
        sessions.submit_answer(iid, started["mcq_id"], "1")


def test_completed_session_cannot_be_abandoned(started):
    iid = started["interview_id"]
    sessions.complete_session(iid)
    with pytest.raises(SessionClosed):
        sessions.abandon_session(iid)


def test_abandon_stale_sessions(published_agent):
    stale = sessions.start_session(published_agent["agent_id"], "Old", "old@example.com")["interview_id"]
    fresh = sessions.start_session(published_agent["agent_id"], "New", "new@example.com")["interview_id"]
    db.session.execute(
        update(Interview).where(Interview.id == stale).values(updated_at=utcnow() - timedelta(hours=5)))
    db.session.commit()

    assert sessions.abandon_stale_sessions(older_than_minutes=60) == 1
    assert _interview(stale).status == "abandoned"
    assert _interview(fresh).status == "in_progress"
    assert sessions.abandon_stale_sessions(older_than_minutes=60) == 0


# follow-ups

def test_follow_up_rounds_are_capped_and_never_scored(started, llm_stub):
    iid, sid = started["interview_id"], started["subjective_id"]
    llm_stub.queue(_rubric(6), _rubric(6), '"Can you give an example?"')

    sessions.submit_answer(iid, sid, "A closure captures variables.")
    prompt = sessions.maybe_follow_up(iid, sid, "A closure captures variables.")
    assert prompt == {"follow_up_question": "Can you give an example?", "round": 1}

    row_id = sessions.submit_follow_up_answer(iid, sid, prompt["follow_up_question"], "A counter factory.")
    # a retried delivery of the same pair is not a new round
    assert sessions.submit_follow_up_answer(iid, sid, prompt["follow_up_question"], "A counter factory.") == row_id
    sessions.submit_follow_up_answer(iid, sid, "Any pitfalls?", "Late binding in loops.")

    row = db.session.get(InterviewResponse, row_id)
    assert row.follow_up_questions == ["Can you give an example?", "Any pitfalls?"]
    assert row.follow_up_answers == ["A counter factory.", "Late binding in loops."]
    assert row.score == 6

    calls_before = len(llm_stub.calls)
    with pytest.raises(FollowUpNotAllowed):
        sessions.maybe_follow_up(iid, sid, "more")
    with pytest.raises(FollowUpNotAllowed):
        sessions.submit_follow_up_answer(iid, sid, "Third?", "Third answer")
    assert len(llm_stub.calls) == calls_before
    assert _interview(iid).total_score == 6


def test_numbered_rounds_keep_identical_pairs(started, llm_stub):
    iid, sid = started["interview_id"], started["subjective_id"]
    llm_stub.queue(_rubric(5))
    sessions.submit_answer(iid, sid, "Not sure.")

    first = sessions.maybe_follow_up(iid, sid, "Not sure.")
    assert first == {"follow_up_question": FALLBACK_FOLLOW_UP, "round": 1}
    row_id = sessions.submit_follow_up_answer(iid, sid, first["follow_up_question"], "No.",
                                              follow_up_round=first["round"])
    second = sessions.maybe_follow_up(iid, sid, "No.")
    assert second == {"follow_up_question": FALLBACK_FOLLOW_UP, "round": 2}
    assert sessions.submit_follow_up_answer(iid, sid, second["follow_up_question"], "No.",
                                            follow_up_round=second["round"]) == row_id
    # redelivered rounds are not stored again
    assert sessions.submit_follow_up_answer(iid, sid, FALLBACK_FOLLOW_UP, "No.", follow_up_round=1) == row_id
    assert sessions.submit_follow_up_answer(iid, sid, FALLBACK_FOLLOW_UP, "No.", follow_up_round=2) == row_id

    row = db.session.get(InterviewResponse, row_id)
    assert row.follow_up_rounds == 2
    assert row.follow_up_questions == [FALLBACK_FOLLOW_UP, FALLBACK_FOLLOW_UP]
    assert row.follow_up_answers == ["No.", "No."]
    with pytest.raises(FollowUpNotAllowed):
        sessions.submit_follow_up_answer(iid, sid, FALLBACK_FOLLOW_UP, "No.", follow_up_round=3)
    assert _interview(iid).total_score == 5


def test_follow_up_round_cannot_skip_ahead(started):
    iid, sid = started["interview_id"], started["subjective_id"]
    with pytest.raises(FollowUpNotAllowed):
        sessions.submit_follow_up_answer(iid, sid, "Any pitfalls?", "Late binding.", follow_up_round=2)
    assert InterviewResponse.query.filter_by(interview_id=iid).count() == 0


def test_follow_up_before_answer_keeps_score_and_rounds(started, llm_stub):
    iid, sid = started["interview_id"], started["subjective_id"]
    llm_stub.queue(_rubric(7))

    row_id = sessions.submit_follow_up_answer(iid, sid, "Can you give an example?", "A counter factory.",
                                              follow_up_round=1)
    assert sessions.submit_answer(iid, sid, "A closure captures variables.") == {"acknowledged": True}

    rows = InterviewResponse.query.filter_by(interview_id=iid).all()
    assert [r.id for r in rows] == [row_id]
    assert rows[0].score == 7
    assert rows[0].candidate_answer == "A closure captures variables."
    assert rows[0].follow_up_questions == ["Can you give an example?"]
    assert rows[0].follow_up_answers == ["A counter factory."]
    assert _interview(iid).total_score == 7


def test_follow_up_uses_fallback_when_llm_fails(started, llm_stub):
    prompt = sessions.maybe_follow_up(started["interview_id"], started["subjective_id"], "answer")
    assert prompt["round"] == 1
    assert prompt["follow_up_question"]


def test_follow_up_rejected_for_mcq(started):
    with pytest.raises(InvalidQuestionForFollowUp):
        sessions.maybe_follow_up(started["interview_id"], started["mcq_id"], "1")
    with pytest.raises(InvalidQuestionForFollowUp):
        sessions.submit_follow_up_answer(started["interview_id"], started["mcq_id"], "Why?", "Because")


def test_follow_up_rejected_when_disabled(creator_id, started):
    agents.update_agent(creator_id, started["agent_id"], enable_follow_ups=False)
    with pytest.raises(FollowUpNotAllowed):
        sessions.maybe_follow_up(started["interview_id"], started["subjective_id"], "answer")


# recordings and creator views

def test_attach_recording_stores_locally(started):
    iid = started["interview_id"]
    recording = sessions.attach_recording(iid, b"\x1a\x45\xdf\xa3webm", duration_sec=42)
    assert recording.file_size == 8
    assert recording.duration_sec == 42
    assert recording.storage_key.startswith(f"recordings/{iid}/")
    assert recording.storage_key.endswith(".webm")

    interview = _interview(iid)
    assert interview.recording_url == recording.storage_url
    assert storage.download_bytes(interview.recording_url) == b"\x1a\x45\xdf\xa3webm"

    # completing without a url keeps the stored pointer
    assert sessions.complete_session(iid).recording_url == recording.storage_url


def test_attach_recording_rejected_when_abandoned(started):
    sessions.abandon_session(started["interview_id"])
    with pytest.raises(SessionClosed):
        sessions.attach_recording(started["interview_id"], b"data")


def test_session_detail_for_creator(creator_id, other_user_id, started, llm_stub):
    iid = started["interview_id"]
    llm_stub.queue(_rubric(5))
    sessions.submit_answer(iid, started["mcq_id"], "1")
    sessions.submit_answer(iid, started["subjective_id"], "answer")

    detail = sessions.get_session_detail(creator_id, iid)
    assert detail["interview"]["total_score"] == 7
    assert detail["agent"] == {"id": started["agent_id"], "name": "Python Screen", "total_marks": 12}
    by_question = {r["question_id"]: r for r in detail["responses"]}
    assert by_question[started["mcq_id"]]["question"]["correct_option"] == 1
    assert by_question[started["subjective_id"]]["question"]["key_points"] == KEY_POINTS
    assert detail["recordings"] == []

    with pytest.raises(Unauthorized):
        sessions.get_session_detail(other_user_id, iid)


def test_list_sessions_newest_first(creator_id, other_user_id, published_agent):
    first = sessions.start_session(published_agent["agent_id"], "A", "a@example.com")["interview_id"]
    second = sessions.start_session(published_agent["agent_id"], "B", "b@example.com")["interview_id"]
    listed = sessions.list_sessions(creator_id, published_agent["agent_id"])
    assert [i.id for i in listed] == [second, first]
    with pytest.raises(Unauthorized):
        sessions.list_sessions(other_user_id, published_agent["agent_id"])


def test_interviews_outlive_their_agent(creator_id, started):
    iid = started["interview_id"]
    agents.delete_agent(creator_id, started["agent_id"])
    assert _interview(iid) is not None
    with pytest.raises(AgentNotFound):
        sessions.get_session_detail(creator_id, iid)


def test_concurrent_duplicate_answers_count_once(app, started):
    iid, mcq_id = started["interview_id"], started["mcq_id"]
    db.session.remove()

    workers = 4
    barrier = threading.Barrier(workers)
    errors = []

    def submit():
        with app.app_context():
            try:
                barrier.wait()
                sessions.submit_answer(iid, mcq_id, "1")
            except Exception as e:  # collected and asserted below
                errors.append(e)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=submit) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert InterviewResponse.query.filter_by(interview_id=iid).count() == 1
    assert _interview(iid).total_score == 2
