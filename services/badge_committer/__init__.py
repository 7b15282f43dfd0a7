"""
Badge Committer Service for TaskBadge.

This service is responsible for:
- Writing badge artifacts into the working tree
- Staging and committing them only when they changed
- Pushing the commit with bounded, classified retries
"""

__version__ = "1.0.0"
__description__ = "Badge artifact commit pipeline"
