"""
Data types shared by the capture engine, the assembler and the CLI
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class WindowBounds:
  """Capturable region of the target window, in screen pixels."""
  x: int
  y: int
  width: int
  height: int


@dataclass(frozen=True)
class PageCapture:
  path: Path
  page_number: int
  fingerprint: str


class SessionStatus(Enum):
  IDLE = "idle"
  INITIALIZING = "initializing"
  CAPTURING = "capturing"
  STOPPING = "stopping"
  CANCELLED = "cancelled"
  COMPLETED = "completed"
  FAILED = "failed"

  @property
  def is_terminal(self) -> bool:
    return self in (SessionStatus.CANCELLED, SessionStatus.COMPLETED, SessionStatus.FAILED)


@dataclass
class CaptureOptions:
  """Start options for one capture session."""
  output_directory: Path
  capture_delay_ms: int = 1000
  start_page: int = 1
  max_pages: Optional[int] = None

  def validate(self) -> None:
    if self.capture_delay_ms < 0:
      raise ValueError(f"capture delay must be >= 0 ms, got {self.capture_delay_ms}")
    if self.start_page < 1:
      raise ValueError(f"start page must be >= 1, got {self.start_page}")
    if self.max_pages is not None and self.max_pages < 1:
      raise ValueError(f"max pages must be >= 1 or unlimited, got {self.max_pages}")


@dataclass
class CaptureSession:
  output_directory: Path
  capture_delay_ms: int
  current_page: int
  max_pages: Optional[int] = None
  pages_processed: int = 0
  bounds: Optional[WindowBounds] = None
  status: SessionStatus = SessionStatus.IDLE

  @property
  def limit_reached(self) -> bool:
    return self.max_pages is not None and self.pages_processed >= self.max_pages


@dataclass
class CaptureResult:
  success: bool
  pages_captured: int = 0
  document_path: Optional[Path] = None
  error: Optional[str] = None
