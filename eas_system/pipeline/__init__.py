"""Pipeline orchestration for the post-to-alert lifecycle.

Provides explicit task dispatch between stages:
- DisasterPipeline: ingest -> classify -> validate -> alert
"""

from eas_system.pipeline.disaster_pipeline import DisasterPipeline

__all__ = ["DisasterPipeline"]
