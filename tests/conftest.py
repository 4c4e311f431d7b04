from pathlib import Path
from typing import Callable, List, Optional

import pytest
from PIL import Image

from unkindle.config import Settings
from unkindle.models import WindowBounds
from unkindle.window import WindowController


class FakeWindow(WindowController):
  """In-memory e-reader: each "page" is a solid colour, the last one repeats."""

  def __init__(self, pages: List[tuple], report: str = "0, 0, 40, 82", running: bool = True):
    self.pages = pages
    self.report = report
    self.running = running
    self.index = 0
    self.advances = 0
    self.foregrounds = 0
    self.capture_calls = 0
    self.fail_capture_at: Optional[int] = None
    self.empty_capture = False
    self.fail_advance = False
    self.on_capture: Optional[Callable[[int], None]] = None

  def is_running(self) -> bool:
    return self.running

  def locate(self) -> str:
    return self.report

  def foreground(self) -> None:
    self.foregrounds += 1

  def capture_region(self, bounds: WindowBounds, path: Path) -> None:
    self.capture_calls += 1
    if self.fail_capture_at == self.capture_calls:
      Path(path).write_bytes(b"\x89PNG partial")
      raise RuntimeError("screencapture exited with status 1")
    if self.empty_capture:
      Path(path).write_bytes(b"")
    else:
      color = self.pages[min(self.index, len(self.pages) - 1)]
      Image.new('RGB', (bounds.width, bounds.height), color).save(path, 'PNG')
    if self.on_capture:
      self.on_capture(self.capture_calls)

  def send_advance_key(self) -> None:
    if self.fail_advance:
      raise RuntimeError("CGEventPost failed")
    self.advances += 1
    self.index += 1


def write_page(directory: Path, page_number: int, timestamp_ms: int,
               size=(20, 30), color=(255, 255, 255)) -> Path:
  path = Path(directory) / f"page_{page_number}_{timestamp_ms}.png"
  Image.new('RGB', size, color).save(path, 'PNG')
  return path


COLORS = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0), (0, 255, 255)]


@pytest.fixture
def settings(tmp_path):
  return Settings(activate_delay_sec=0, page_turn_delay_sec=0, library_dir=tmp_path / "books")


@pytest.fixture
def no_sleep():
  return lambda seconds: None
