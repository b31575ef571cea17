"""Response ledger: one row per (interview, question), merged in place.

All writes here assume the caller holds the interview lock from
``lock_interview`` so merges for one session are serialized. The unique
constraint on (interview_id, question_id) backs that up at the schema level.
"""
from sqlalchemy import select, update

from ..extensions import db
from ..errors import SessionNotFound
from ..models.base import utcnow
from ..models.interview import Interview
from ..models.response import InterviewResponse


def lock_interview(interview_id):
    """Take the per-interview write lock and return the freshly loaded row.

    The no-op UPDATE is what locks: a row lock on PostgreSQL, the database
    write lock on SQLite. Raises ``SessionNotFound`` when the row is gone.
    """
    result = db.session.execute(
        update(Interview)
        .where(Interview.id == interview_id)
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise SessionNotFound()
    return db.session.execute(
        select(Interview)
        .where(Interview.id == interview_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one()


def find_response(interview_id, question_id):
    return db.session.execute(
        select(InterviewResponse)
        .where(InterviewResponse.interview_id == interview_id,
               InterviewResponse.question_id == question_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def is_repeat_of_last_pair(row, follow_up):
    questions = row.follow_up_questions or []
    answers = row.follow_up_answers or []
    if not questions or not answers:
        return False
    return (questions[-1], answers[-1]) == tuple(follow_up)


def is_new_follow_up(row, follow_up, follow_up_round=None):
    """A numbered round is new only past the rounds already stored.

    Unnumbered pairs fall back to dropping an exact repeat of the last pair.
    """
    if follow_up_round is not None:
        return follow_up_round > (row.follow_up_rounds or 0)
    return not is_repeat_of_last_pair(row, follow_up)


def record_response(interview, question_id, candidate_answer=None, score=None,
                    rationale=None, is_correct=None, follow_up=None,
                    follow_up_round=None):
    """Insert or merge the ledger row for ``(interview, question_id)``.

    Merge rule: the latest answer wins, the stored score only ever grows,
    follow-up pairs are appended (a round number at or below the stored count,
    or without a round number an identical repeat of the last pair, is a
    retried delivery and is dropped), and the most recent non-empty rationale
    is kept.

    Returns ``(response, delta)`` where ``delta`` is how much the stored best
    score went up. That is the amount the session total may grow by.
    """
    row = find_response(interview.id, question_id)
    if row is None:
        row = InterviewResponse(
            interview_id=interview.id,
            question_id=question_id,
            candidate_answer=candidate_answer if candidate_answer is not None else "",
            is_correct=is_correct,
            score=score or 0,
            evaluation_feedback=rationale or None,
            follow_up_questions=[follow_up[0]] if follow_up else [],
            follow_up_answers=[follow_up[1]] if follow_up else [],
            answered_at=utcnow(),
        )
        db.session.add(row)
        db.session.flush()
        return row, row.score

    delta = 0
    if candidate_answer is not None:
        row.candidate_answer = candidate_answer
        row.answered_at = utcnow()
    if score is not None and score > row.score:
        delta = score - row.score
        row.score = score
    if is_correct is not None:
        # correctness follows the best attempt
        row.is_correct = bool(row.is_correct) or is_correct
    if rationale:
        row.evaluation_feedback = rationale
    if follow_up and is_new_follow_up(row, follow_up, follow_up_round):
        # reassign so the JSON columns are flagged dirty
        row.follow_up_questions = list(row.follow_up_questions or []) + [follow_up[0]]
        row.follow_up_answers = list(row.follow_up_answers or []) + [follow_up[1]]
    db.session.flush()
    return row, delta
