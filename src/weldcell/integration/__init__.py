"""Adapters between the simulation and external collaborators."""

from weldcell.integration.assistant import (
    RECOMMENDED_FIXES,
    ActionFeed,
    AssistantAlert,
    AssistantChannel,
    AssistantPolicy,
    FeedEntry,
    LoggingAssistantChannel,
    OperatorAssistantBridge,
)

__all__ = [
    "RECOMMENDED_FIXES",
    "ActionFeed",
    "AssistantAlert",
    "AssistantChannel",
    "AssistantPolicy",
    "FeedEntry",
    "LoggingAssistantChannel",
    "OperatorAssistantBridge",
]
