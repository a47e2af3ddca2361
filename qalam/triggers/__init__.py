"""Scheduled and administrative triggers for the notification processor."""

from .handlers import AdminTrigger, ScheduledTrigger, TriggerResponse, extract_bearer_token

__all__ = ["AdminTrigger", "ScheduledTrigger", "TriggerResponse", "extract_bearer_token"]
