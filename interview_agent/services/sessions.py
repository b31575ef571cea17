"""Interview session state machine.

A session moves ``created -> intro_pending -> questioning -> completing ->
completed``; ``abandoned`` is set from outside (give-up or expiry) and is
terminal like ``completed``.

Every write that touches the ledger or the running score follows the same
shape:

1. read and validate, then end the transaction;
2. call the LLM (evaluation / follow-up) with no transaction open;
3. take the interview lock (``ledger.lock_interview``), re-check the status,
   merge the ledger row and bump ``total_score`` by the ledger's delta.

Because the score only grows by how much the stored best score for a
question went up, a retried or duplicated submission adds nothing twice and
``0 <= total_score <= max_score`` always holds.
"""
from datetime import timedelta

from flask import current_app
from sqlalchemy import case, select, update

from . import evaluator, followup, ledger, storage
from .agents import require_owned_agent, require_user
from ..extensions import db
from ..errors import (AgentNotFoundOrUnpublished, FollowUpNotAllowed,
                      InvalidQuestionForFollowUp, QuestionNotFound, SessionClosed, SessionNotFound)
from ..models.agent import InterviewAgent
from ..models.base import utcnow
from ..models.interview import (ABANDONED, COMPLETED, IN_PROGRESS, PHASE_ABANDONED, PHASE_COMPLETED,
                                PHASE_COMPLETING, PHASE_CREATED, PHASE_INTRO_PENDING, PHASE_QUESTIONING,
                                Interview)
from ..models.question import SUBJECTIVE, Question
from ..models.recording import Recording


def _start(agent, candidate_name, candidate_email, candidate_user_id):
    if agent is None or not agent.is_published:
        raise AgentNotFoundOrUnpublished()
    questions = sorted(agent.questions, key=lambda q: (q.order, q.id))
    interview = Interview(
        agent_id=agent.id,
        candidate_name=candidate_name.strip(),
        candidate_email=candidate_email.strip(),
        candidate_user_id=candidate_user_id,
        status=IN_PROGRESS,
        phase=PHASE_CREATED,
        total_score=0,
        max_score=sum(q.marks for q in questions),
        question_ids=[q.id for q in questions],
        started_at=utcnow(),
    )
    db.session.add(interview)
    db.session.flush()
    interview.phase = PHASE_INTRO_PENDING
    db.session.commit()
    current_app.logger.info('Interview %s started on agent %s (%s questions, max %s)',
                            interview.id, agent.id, len(questions), interview.max_score)
    return {
        "interview_id": interview.id,
        "agent_name": agent.name,
        "questions": [q.to_candidate_dict() for q in questions],
    }


def start_session(agent_id, candidate_name, candidate_email, candidate_user_id=None):
    """Start an interview against a published agent.

    ``max_score`` and the ordered question ids are snapshotted here; later
    edits to the agent's questions do not change them.
    """
    return _start(db.session.get(InterviewAgent, agent_id), candidate_name, candidate_email, candidate_user_id)


def start_session_by_link(shareable_link, candidate_name, candidate_email, candidate_user_id=None):
    agent = InterviewAgent.query.filter_by(shareable_link=shareable_link).first()
    return _start(agent, candidate_name, candidate_email, candidate_user_id)


def _get_interview(interview_id):
    interview = db.session.get(Interview, interview_id)
    if interview is None:
        raise SessionNotFound()
    return interview


def _require_open(interview):
    if interview.status != IN_PROGRESS:
        raise SessionClosed()
    return interview


def _session_question(interview, question_id):
    """The question as asked in this session, or ``QuestionNotFound``."""
    if question_id not in (interview.question_ids or []):
        raise QuestionNotFound()
    question = db.session.get(Question, question_id)
    if question is None or question.agent_id != interview.agent_id:
        raise QuestionNotFound()
    return question


def _snapshot(question):
    """Unsaved copy of ``question``, then end the read transaction.

    The copy stays usable during the LLM call without holding the session
    or a database lock.
    """
    fields = {name: getattr(question, name) for name in question.common_fields + question.variant_fields}
    copy = Question.build(question.type, id=question.id, agent_id=question.agent_id, **fields)
    db.session.commit()
    return copy


def _add_to_total(interview_id, delta):
    if delta <= 0:
        return
    new_total = Interview.total_score + delta
    db.session.execute(
        update(Interview)
        .where(Interview.id == interview_id)
        .values(total_score=case((new_total > Interview.max_score, Interview.max_score), else_=new_total))
        .execution_options(synchronize_session=False)
    )


def _advance_to_questioning(interview):
    if interview.phase in (PHASE_CREATED, PHASE_INTRO_PENDING):
        interview.phase = PHASE_QUESTIONING


def submit_intro(interview_id, intro_text):
    interview = _require_open(ledger.lock_interview(interview_id))
    interview.candidate_intro = intro_text or ""
    _advance_to_questioning(interview)
    db.session.commit()


def submit_answer(interview_id, question_id, candidate_answer):
    """Score an answer, merge it into the ledger and grow the running total.

    Returns only an acknowledgment: the candidate never sees correctness,
    score or rationale.
    """
    interview = _require_open(_get_interview(interview_id))
    question = _snapshot(_session_question(interview, question_id))
    answer = "" if candidate_answer is None else str(candidate_answer)

    result = evaluator.evaluate(question, answer)

    try:
        interview = _require_open(ledger.lock_interview(interview_id))
        _, delta = ledger.record_response(
            interview,
            question.id,
            candidate_answer=answer,
            score=result["score"],
            rationale=result.get("rationale"),
            is_correct=result.get("is_correct"),
        )
        _add_to_total(interview.id, delta)
        _advance_to_questioning(interview)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info('Interview %s question %s answered (+%s)', interview_id, question.id, delta)
    return {"acknowledged": True}


def _follow_up_limit(interview):
    agent = db.session.get(InterviewAgent, interview.agent_id)
    if agent is None or not agent.enable_follow_ups:
        return 0
    return agent.max_follow_ups


def maybe_follow_up(interview_id, question_id, candidate_answer):
    """Generate the next follow-up prompt for a subjective answer.

    Rejects non-subjective questions, agents with follow-ups disabled and
    rounds beyond ``max_follow_ups``. Nothing is stored here; the pair is
    recorded by ``submit_follow_up_answer``.
    """
    interview = _require_open(_get_interview(interview_id))
    question = _session_question(interview, question_id)
    if question.type != SUBJECTIVE:
        raise InvalidQuestionForFollowUp()
    row = ledger.find_response(interview.id, question.id)
    rounds = row.follow_up_rounds if row is not None else 0
    if rounds >= _follow_up_limit(interview):
        raise FollowUpNotAllowed()
    question = _snapshot(question)

    text = followup.generate_follow_up(question, candidate_answer or "")
    return {"follow_up_question": text, "round": rounds + 1}


def submit_follow_up_answer(interview_id, question_id, follow_up_question, follow_up_answer,
                            follow_up_round=None):
    """Append one follow-up round. Never changes any score.

    Follow-up answers are kept for human review; scoring them automatically
    would count the same question twice.

    ``follow_up_round`` is the ``round`` handed out by ``maybe_follow_up``.
    When given, a round already stored is a retried delivery and returns the
    existing row, and skipping ahead is rejected. Without it, an exact repeat
    of the last pair is treated as the retry.
    """
    try:
        interview = _require_open(ledger.lock_interview(interview_id))
        question = _session_question(interview, question_id)
        if question.type != SUBJECTIVE:
            raise InvalidQuestionForFollowUp()
        pair = (follow_up_question or "", follow_up_answer or "")
        row = ledger.find_response(interview.id, question.id)
        if row is not None and not ledger.is_new_follow_up(row, pair, follow_up_round):
            db.session.commit()
            return row.id
        rounds = row.follow_up_rounds if row is not None else 0
        if rounds >= _follow_up_limit(interview):
            raise FollowUpNotAllowed()
        if follow_up_round is not None and follow_up_round != rounds + 1:
            raise FollowUpNotAllowed(f"Expected follow-up round {rounds + 1}", round=follow_up_round)
        row, _ = ledger.record_response(interview, question.id, follow_up=pair,
                                        follow_up_round=follow_up_round)
        _advance_to_questioning(interview)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return row.id


def complete_session(interview_id, recording_url=None):
    """Mark the interview completed. Safe to call again; the score is untouched."""
    interview = ledger.lock_interview(interview_id)
    if interview.status == ABANDONED:
        db.session.rollback()
        raise SessionClosed()
    if interview.status == IN_PROGRESS:
        interview.phase = PHASE_COMPLETING
        db.session.flush()
    interview.status = COMPLETED
    interview.phase = PHASE_COMPLETED
    interview.completed_at = utcnow()
    if recording_url:
        interview.recording_url = recording_url
    db.session.commit()
    current_app.logger.info('Interview %s completed with %s/%s', interview.id,
                            interview.total_score, interview.max_score)
    return interview


def abandon_session(interview_id):
    interview = ledger.lock_interview(interview_id)
    if interview.status == COMPLETED:
        db.session.rollback()
        raise SessionClosed()
    interview.status = ABANDONED
    interview.phase = PHASE_ABANDONED
    db.session.commit()
    current_app.logger.info('Interview %s abandoned', interview.id)
    return interview


def abandon_stale_sessions(older_than_minutes=None):
    """Abandon in-progress interviews with no activity for ``older_than_minutes``."""
    if older_than_minutes is None:
        older_than_minutes = current_app.config.get('SESSION_ABANDON_AFTER_MINUTES', 180)
    cutoff = utcnow() - timedelta(minutes=older_than_minutes)
    result = db.session.execute(
        update(Interview)
        .where(Interview.status == IN_PROGRESS, Interview.updated_at < cutoff)
        .values(status=ABANDONED, phase=PHASE_ABANDONED, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    if result.rowcount:
        current_app.logger.info('Abandoned %s stale interviews', result.rowcount)
    return result.rowcount


def attach_recording(interview_id, data, mime_type="video/webm", duration_sec=None):
    """Upload a recording, store its metadata and point the interview at it."""
    if _get_interview(interview_id).status == ABANDONED:
        raise SessionClosed()
    db.session.commit()

    upload = storage.upload_recording(interview_id, data, mime_type)

    try:
        interview = ledger.lock_interview(interview_id)
        if interview.status == ABANDONED:
            raise SessionClosed()
        recording = Recording(
            interview_id=interview.id,
            storage_key=upload["key"],
            storage_url=upload["url"],
            public_url=upload.get("public_url"),
            file_size=upload["file_size"],
            duration_sec=duration_sec,
            mime_type=mime_type,
            uploaded_at=utcnow(),
        )
        db.session.add(recording)
        interview.recording_url = upload.get("public_url") or upload["url"]
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info('Recording %s attached to interview %s (%s bytes)',
                            recording.id, interview_id, recording.file_size)
    return recording


def list_sessions(user_id, agent_id):
    agent = require_owned_agent(user_id, agent_id)
    return (
        Interview.query.filter_by(agent_id=agent.id)
        .order_by(Interview.started_at.desc(), Interview.id.desc())
        .all()
    )


def get_session_detail(user_id, interview_id):
    """Creator view: interview, agent summary, responses joined to questions."""
    require_user(user_id)
    interview = _get_interview(interview_id)
    # raises AgentNotFound once the agent is deleted: orphaned interviews have no owner
    agent = require_owned_agent(user_id, interview.agent_id)
    questions = {}
    if interview.question_ids:
        rows = db.session.execute(select(Question).where(Question.id.in_(interview.question_ids))).scalars()
        questions = {q.id: q for q in rows}
    responses = []
    for r in interview.responses:
        d = r.to_dict()
        q = questions.get(r.question_id)
        d["question"] = q.to_dict() if q is not None else None
        responses.append(d)
    return {
        "interview": interview.to_dict(),
        "agent": {"id": agent.id, "name": agent.name, "total_marks": agent.total_marks},
        "responses": responses,
        "recordings": [dict(rec.to_dict(), download_url=storage.signed_download_url(rec.storage_url))
                       for rec in interview.recordings],
    }
