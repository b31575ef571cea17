"""Domain errors raised by the service layer.

Every error carries a stable ``code`` and the HTTP status the blueprints
answer with. Expected rejections (not found, unauthorized, precondition)
are raised synchronously to the caller. LLM failures inside the interview
pipeline never surface here; they are converted to fallbacks where they
happen.
"""


class InterviewError(Exception):
    code = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message=None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        payload = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidRequest(InterviewError):
    """Request body failed form validation."""
    code = "invalid_request"
    default_message = "Invalid request"

    def __init__(self, message=None, fields=None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self):
        return {"error": self.code, "message": self.message, "fields": self.fields}


# authorization

class Unauthorized(InterviewError):
    code = "unauthorized"
    status_code = 403
    default_message = "Unauthorized"


class AuthenticationRequired(Unauthorized):
    status_code = 401
    default_message = "Sign in required"


# not found

class NotFound(InterviewError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class AgentNotFound(NotFound):
    code = "agent_not_found"
    default_message = "Agent not found"


class AgentNotFoundOrUnpublished(AgentNotFound):
    code = "agent_not_found_or_unpublished"
    default_message = "Agent not found or not published"


class QuestionNotFound(NotFound):
    code = "question_not_found"
    default_message = "Question not found"


class SessionNotFound(NotFound):
    code = "session_not_found"
    default_message = "Interview not found"


class SourceNotFound(NotFound):
    code = "source_not_found"
    default_message = "Source not found"


# preconditions

class PreconditionFailed(InterviewError):
    code = "precondition_failed"
    status_code = 409


class CannotPublishWithoutQuestions(PreconditionFailed):
    code = "cannot_publish_without_questions"
    default_message = "Cannot publish agent without questions"


class InvalidQuestionForFollowUp(PreconditionFailed):
    code = "invalid_question_for_follow_up"
    default_message = "Invalid question for follow-up"


class FollowUpNotAllowed(PreconditionFailed):
    code = "follow_up_not_allowed"
    default_message = "No further follow-ups are allowed for this question"


class SessionClosed(PreconditionFailed):
    code = "session_closed"
    default_message = "Interview is no longer in progress"


class InvalidAgentSettings(PreconditionFailed):
    code = "invalid_agent_settings"
    status_code = 422
    default_message = "Invalid agent settings"


class InvalidSourceRequest(PreconditionFailed):
    code = "invalid_source"
    status_code = 422
    default_message = "Invalid knowledge source"


class MalformedQuestionDefinition(PreconditionFailed):
    code = "malformed_question"
    status_code = 422
    default_message = "Malformed question definition"


class MalformedMCQDefinition(MalformedQuestionDefinition):
    code = "malformed_mcq"
    default_message = "MCQ must have exactly 4 options and a valid correct option (0-3)"


class MalformedSubjectiveDefinition(MalformedQuestionDefinition):
    code = "malformed_subjective"
    default_message = "Subjective question must have at least 3 key points"


# external collaborators (creator-facing only)

class ExternalServiceError(InterviewError):
    code = "external_service_error"
    status_code = 502
    default_message = "External service failed"


class QuestionGenerationFailed(ExternalServiceError):
    code = "question_generation_failed"
    default_message = "Failed to generate questions"


class ScrapeFailed(ExternalServiceError):
    code = "scrape_failed"
    default_message = "Failed to scrape content"


class LLMError(RuntimeError):
    """Provider failure: transport error, bad status, missing key or empty output."""
