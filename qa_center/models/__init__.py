"""Database models."""
from qa_center.core.database import Base
from qa_center.models.user import User, Team, TeamMember
from qa_center.models.credit import CreditAccount, CreditTransaction, TransactionType
from qa_center.models.interaction import Interaction, InteractionMessage
from qa_center.models.evaluation import Evaluation, EvaluationJob, JobStatus
from qa_center.models.criteria import CriteriaProfile
from qa_center.models.scheduler import SchedulerRun

__all__ = [
    "Base",
    "User",
    "Team",
    "TeamMember",
    "CreditAccount",
    "CreditTransaction",
    "TransactionType",
    "Interaction",
    "InteractionMessage",
    "Evaluation",
    "EvaluationJob",
    "JobStatus",
    "CriteriaProfile",
    "SchedulerRun",
]
