"""Persistence layer — append-only event log and JSON state store."""

from pledges.persistence.event_log import EventKind, EventLog, EventRecord
from pledges.persistence.state_store import StateStore

__all__ = ["EventKind", "EventLog", "EventRecord", "StateStore"]
