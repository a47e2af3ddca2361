"""Producers append notification events and run the editorial workflow hooks."""

from .producer import (
    ArticleRef,
    NotificationProducer,
    approve_and_notify,
    notify_submission,
    reject_and_notify,
)

__all__ = [
    "ArticleRef",
    "NotificationProducer",
    "approve_and_notify",
    "notify_submission",
    "reject_and_notify",
]
