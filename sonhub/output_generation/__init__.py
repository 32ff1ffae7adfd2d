"""
Output Generation Package
Handles feed reports.
"""

from .report_generator import FeedReportGenerator

__all__ = ['FeedReportGenerator']
