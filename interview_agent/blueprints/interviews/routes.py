from flask import jsonify
from flask_login import login_required
from . import bp
from .forms import AnswerForm, CompleteForm, FollowUpAnswerForm, IntroForm, RecordingForm, StartForm
from ...services import agents, sessions
from ...utils.decorators import with_identity
from ...utils.forms import validated


# candidate side: public, responses never carry scores or correctness

@bp.get("/i/<link>")
def public_agent(link):
    return jsonify(agents.get_public_agent(link))


@bp.post("/i/<link>/start")
@with_identity
def start(link, user_id):
    form = validated(StartForm)
    started = sessions.start_session_by_link(
        link, form.candidate_name.data, form.candidate_email.data, candidate_user_id=user_id)
    return jsonify(started), 201


@bp.post("/interviews/<int:interview_id>/intro")
def submit_intro(interview_id):
    form = validated(IntroForm)
    sessions.submit_intro(interview_id, form.intro_text.data)
    return jsonify({"acknowledged": True})


@bp.post("/interviews/<int:interview_id>/answers")
def submit_answer(interview_id):
    form = validated(AnswerForm)
    return jsonify(sessions.submit_answer(interview_id, form.question_id.data, form.candidate_answer.data))


@bp.post("/interviews/<int:interview_id>/follow-ups")
def follow_up(interview_id):
    form = validated(AnswerForm)
    return jsonify(sessions.maybe_follow_up(interview_id, form.question_id.data, form.candidate_answer.data))


@bp.post("/interviews/<int:interview_id>/follow-up-answers")
def submit_follow_up_answer(interview_id):
    form = validated(FollowUpAnswerForm)
    sessions.submit_follow_up_answer(
        interview_id, form.question_id.data, form.follow_up_question.data, form.follow_up_answer.data,
        follow_up_round=form.round.data)
    return jsonify({"acknowledged": True})


@bp.post("/interviews/<int:interview_id>/recording")
def upload_recording(interview_id):
    form = validated(RecordingForm)
    upload = form.file.data
    sessions.attach_recording(
        interview_id, upload.read(), upload.mimetype or "video/webm", duration_sec=form.duration_sec.data)
    return jsonify({"acknowledged": True}), 201


@bp.post("/interviews/<int:interview_id>/complete")
def complete(interview_id):
    form = validated(CompleteForm)
    interview = sessions.complete_session(interview_id, recording_url=form.recording_url.data or None)
    return jsonify({"status": interview.status})


# creator review

@bp.get("/agents/<int:agent_id>/interviews")
@login_required
@with_identity
def list_interviews(agent_id, user_id):
    return jsonify([i.to_dict() for i in sessions.list_sessions(user_id, agent_id)])


@bp.get("/interviews/<int:interview_id>")
@login_required
@with_identity
def interview_detail(interview_id, user_id):
    return jsonify(sessions.get_session_detail(user_id, interview_id))
