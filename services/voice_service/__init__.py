"""
Voice service - speech capture, playback and the turn orchestrator.
"""

from .adapters import CaptureAdapter, PlaybackAdapter, Voice, select_voice
from .capture import CaptureSession, TranscriptionCapture
from .orchestrator import Notification, TurnOrchestrator, TurnResult, TurnState
from .session import build_orchestrator

__all__ = [
    'CaptureAdapter',
    'PlaybackAdapter',
    'Voice',
    'select_voice',
    'CaptureSession',
    'TranscriptionCapture',
    'Notification',
    'TurnOrchestrator',
    'TurnResult',
    'TurnState',
    'build_orchestrator'
]
