"""
Domain models: enums and pydantic schemas.
"""
from .enums import ContactMethodType, JobType, SyncStyle

__all__ = ["ContactMethodType", "JobType", "SyncStyle"]
