"""
Adapters layer - Appointment stores, schedule sources and draft storage.
"""

from .catalog import CatalogScheduleSource
from .draft_storage import FileDraftStorage, MemoryDraftStorage
from .file_store import JsonFileAppointmentStore
from .http_store import HttpAppointmentStore
from .memory_store import InMemoryAppointmentStore

__all__ = [
    "CatalogScheduleSource",
    "FileDraftStorage",
    "HttpAppointmentStore",
    "InMemoryAppointmentStore",
    "JsonFileAppointmentStore",
    "MemoryDraftStorage",
]
