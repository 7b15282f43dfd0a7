"""
Badge Generator Service for TaskBadge.

This service is responsible for:
- Turning task counts into badge artifacts
- Choosing badge colors from completion
- Deriving stable badge file paths from spec names
"""

__version__ = "1.0.0"
__description__ = "Badge artifact rendering"
