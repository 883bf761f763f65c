"""Cross-process mirror of the current week's intention."""

from .cache import WidgetMirror
from .medium import FileMirrorMedium, MirrorUnavailableError
from .models import LEGACY_TEXT_KEYS, MirrorSnapshot
from .signal import CallbackRefreshSignal, FileRefreshSignal, RefreshSignal

__all__ = [
    "CallbackRefreshSignal",
    "FileMirrorMedium",
    "FileRefreshSignal",
    "LEGACY_TEXT_KEYS",
    "MirrorSnapshot",
    "MirrorUnavailableError",
    "RefreshSignal",
    "WidgetMirror",
]
