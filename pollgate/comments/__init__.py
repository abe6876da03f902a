"""Threaded comments with moderation-aware visibility."""

from pollgate.comments.service import CommentService, ThreadNode, filter_visible, is_visible_to, thread

__all__ = [
    "CommentService",
    "ThreadNode",
    "filter_visible",
    "is_visible_to",
    "thread",
]
