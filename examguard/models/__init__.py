# Models Package
from examguard.models.user import User
from examguard.models.classroom import Classroom, ClassEnrollment
from examguard.models.violation import Violation
from examguard.models.exam import Exam, ExamSession
from examguard.models.plagiarism import PlagiarismCheck
from examguard.models.report import Report

__all__ = [
    "User",
    "Classroom",
    "ClassEnrollment",
    "Violation",
    "Exam",
    "ExamSession",
    "PlagiarismCheck",
    "Report",
]
