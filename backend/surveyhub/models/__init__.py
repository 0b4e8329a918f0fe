from surveyhub.models.base import Base
from surveyhub.models.category import Category, SurveyCategory
from surveyhub.models.role import Role, UserRole
from surveyhub.models.survey import Answer, Question, Survey, UserSurvey
from surveyhub.models.user import User

__all__ = [
    "Base",
    "User",
    "Role",
    "UserRole",
    "Survey",
    "UserSurvey",
    "Question",
    "Answer",
    "Category",
    "SurveyCategory",
]
