"""
Target window discovery.

The control loop only talks to the e-reader through ``WindowController``,
so the automation backend can be swapped (or faked in tests).
"""

import re
from abc import ABC, abstractmethod
from pathlib import Path

from .errors import TargetNotRunning, UnkindleError, WindowGeometryUnavailable
from .models import WindowBounds

NOT_RUNNING = "NOT_RUNNING"


class WindowController(ABC):
  """OS automation surface needed by the capture engine."""

  @abstractmethod
  def is_running(self) -> bool:
    """Whether the target application is running."""

  @abstractmethod
  def locate(self) -> str:
    """Raw position/size report of the target window ("x, y, width, height")."""

  @abstractmethod
  def foreground(self) -> None:
    """Bring the target window to the front."""

  @abstractmethod
  def capture_region(self, bounds: WindowBounds, path: Path) -> None:
    """Write a PNG screenshot of ``bounds`` to ``path``."""

  @abstractmethod
  def send_advance_key(self) -> None:
    """Send one "next page" key press to the foreground application."""


def parse_window_geometry(report: str) -> WindowBounds:
  report = report or ""
  numbers = re.findall(r"-?\d+", report)
  if len(numbers) != 4:
    raise WindowGeometryUnavailable(
        f"Cannot detect the reader window (got {report.strip()!r}). "
        "Make sure it is visible and not minimized.")
  x, y, width, height = (int(n) for n in numbers)
  return WindowBounds(x, y, width, height)


class TargetWindowLocator:
  def __init__(self, window: WindowController, title_bar_inset: int = 22):
    self.window = window
    self.title_bar_inset = title_bar_inset

  def locate(self) -> WindowBounds:
    """Window bounds with the title bar cut off the top."""
    if not self.window.is_running():
      raise TargetNotRunning(
          "Cannot find the reader application. Make sure it is running with a book open.")

    try:
      report = self.window.locate()
    except UnkindleError:
      raise
    except Exception as e:
      raise WindowGeometryUnavailable(f"Window query failed: {e}") from e

    if report.strip() == NOT_RUNNING:
      raise TargetNotRunning(
          "Cannot find the reader application. Make sure it is running with a book open.")

    raw = parse_window_geometry(report)
    bounds = WindowBounds(
        x=raw.x,
        y=raw.y + self.title_bar_inset,
        width=raw.width,
        height=raw.height - self.title_bar_inset,
    )
    if bounds.width <= 0 or bounds.height <= 0:
      raise WindowGeometryUnavailable(f"Window too small to capture: {raw}")
    return bounds
