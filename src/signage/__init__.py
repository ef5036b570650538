"""School signage presentation engine.

Keeps an unattended school display in sync with the realtime document store:
reconciles the settings and daily-data feeds, renders schedules, notices and
assignments, rotates ads, auto-scrolls overflowing panels and chimes on
updates outside class time.
"""

from src.signage.engine import SignageEngine
from src.signage.models import ViewModel
from src.signage.reconciler import Reconciler
from src.signage.store import DocumentStore, JsonDirectoryStore
from src.signage.surface import DisplaySurface, MemorySurface

__all__ = [
    "SignageEngine",
    "ViewModel",
    "Reconciler",
    "DocumentStore",
    "JsonDirectoryStore",
    "DisplaySurface",
    "MemorySurface",
]
