"""Capture an open e-reader book page by page and assemble it into a PDF."""

from .assembler import DocumentAssembler
from .config import Settings
from .controller import CaptureController
from .errors import (AssemblyFailed, CaptureFailed, DirectoryAccessFailed, NavigationFailed,
                     NoPagesFound, TargetNotRunning, UnkindleError, WindowGeometryUnavailable)
from .models import (CaptureOptions, CaptureResult, CaptureSession, PageCapture, SessionStatus,
                     WindowBounds)
from .window import TargetWindowLocator, WindowController

__version__ = "1.0.0"
