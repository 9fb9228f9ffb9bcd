"""
FORMS Module - Surveys for Residents

Components:
- FormService: builder, responses, statistics, due-date reminders
"""

from greenpia.forms.service import FormNotFound, FormService

__all__ = ['FormNotFound', 'FormService']
