"""Scheduler adapters."""

from .apsched_adapter import WARMUP_JOB_ID, WarmupScheduler

__all__ = ["WARMUP_JOB_ID", "WarmupScheduler"]
