from .preload import PreloadOrchestrator
from .session_coordinator import SessionCoordinator
from .stream_resolution import StreamResolutionUseCase

__all__ = [
    "PreloadOrchestrator",
    "SessionCoordinator",
    "StreamResolutionUseCase",
]
