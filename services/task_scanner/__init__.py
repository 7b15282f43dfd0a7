"""
Task Scanner Service for TaskBadge.

This service is responsible for:
- Discovering spec directories and their task documents
- Counting checkbox tasks in each document
- Aggregating per-spec counts into a global total
"""

__version__ = "1.0.0"
__description__ = "Checkbox task discovery and aggregation"
