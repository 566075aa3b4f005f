"""Services for external integrations and task/document logic."""

from studyflow.services.s3 import s3_service
from studyflow.services.pdf_processor import pdf_processor
from studyflow.services.task_analyzer import task_analyzer
from studyflow.services.realtime import change_feed

__all__ = ["s3_service", "pdf_processor", "task_analyzer", "change_feed"]
