from .user import User
from .agent import InterviewAgent
from .question import Question, McqQuestion, SubjectiveQuestion
from .knowledge_source import KnowledgeSource
from .interview import Interview
from .response import InterviewResponse
from .recording import Recording
# base mixins are imported by the above as needed
