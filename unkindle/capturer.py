import time
from pathlib import Path
from typing import Callable

from .errors import CaptureFailed
from .models import WindowBounds
from .window import WindowController


class PageCapturer:
  def __init__(self, window: WindowController, capture_delay_ms: int = 1000,
               activate_delay_sec: float = 0.5,
               sleep: Callable[[float], None] = time.sleep):
    self.window = window
    self.capture_delay_ms = capture_delay_ms
    self.activate_delay_sec = activate_delay_sec
    self.sleep = sleep

  def capture(self, bounds: WindowBounds, destination: Path) -> Path:
    """Screenshot ``bounds`` into ``destination`` after the page has settled."""
    destination = Path(destination)
    try:
      self.window.foreground()
      self.sleep(self.activate_delay_sec)
      # let the page-turn animation finish
      self.sleep(self.capture_delay_ms / 1000)

      self.window.capture_region(bounds, destination)

      if not destination.exists():
        raise CaptureFailed(f"Screenshot file was not created: {destination}")
      if destination.stat().st_size == 0:
        raise CaptureFailed(f"Screenshot file is empty: {destination}")
      return destination
    except Exception as e:
      destination.unlink(missing_ok=True)
      if isinstance(e, CaptureFailed):
        raise
      raise CaptureFailed(f"Failed to capture screenshot: {e}") from e
