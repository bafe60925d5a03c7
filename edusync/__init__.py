"""EduSync assessment service: grading, attempt history and instructor analytics."""

__version__ = "1.0.0"
