"""
Per-turn steps of the chat flow that do not need the generative backend.

- faq: static keyword-matched answers for short questions
- response_shaping: human handoff, suggested actions, marker stripping
"""

from agent.nodes.faq import FAQEntry, is_faq_eligible, match_faq
from agent.nodes.response_shaping import (
    clean_visible_message,
    requires_human_handoff,
    suggested_actions,
)

__all__ = [
    "FAQEntry",
    "clean_visible_message",
    "is_faq_eligible",
    "match_faq",
    "requires_human_handoff",
    "suggested_actions",
]
