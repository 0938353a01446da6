"""
Services Package

Application services for contacts, groups and tags. Each service owns one
ServiceInstrumentation and wraps every operation in a span.
"""

from src.services.contacts import ContactService
from src.services.groups import GroupService
from src.services.tags import TagService

__all__ = ["ContactService", "GroupService", "TagService"]
