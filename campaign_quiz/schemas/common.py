"""
Shared enumerations used by request and response schemas
"""
from typing import Literal

Department = Literal["Learning and Development", "Culture Team", "Right2Drive"]
Role = Literal["admin", "instructor", "learner"]
QuestionType = Literal["multiple_choice", "select_all"]

DEPARTMENTS = ("Learning and Development", "Culture Team", "Right2Drive")
ROLES = ("admin", "instructor", "learner")
QUESTION_TYPES = ("multiple_choice", "select_all")
