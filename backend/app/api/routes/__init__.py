# API Routes Module
from app.api.routes import (
    admin,
    exams,
    students,
    predictions,
)

__all__ = [
    "admin",
    "exams",
    "students",
    "predictions",
]
