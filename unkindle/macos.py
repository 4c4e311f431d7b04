"""
macOS automation backend: AppleScript for the window, screencapture for the
region, Quartz keyboard events for page turns.

Needs Screen Recording and Accessibility permissions for the terminal.
"""

import subprocess
import time
import unicodedata
from pathlib import Path

import Quartz
from AppKit import NSWorkspace

from .config import Settings
from .errors import CaptureFailed, NavigationFailed, TargetNotRunning
from .models import WindowBounds
from .window import NOT_RUNNING, WindowController


class MacWindowController(WindowController):
  def __init__(self, settings: Settings):
    self.app_name = settings.app_name
    self.bundle_id = settings.bundle_id
    self.key_code = settings.advance_key_code

  def _osascript(self, script: str) -> str:
    result = subprocess.run(
        ['osascript', '-e', script], check=True, capture_output=True, text=True)
    return result.stdout

  def is_running(self) -> bool:
    """Look the target up among running apps by bundle id or name."""
    workspace = NSWorkspace.sharedWorkspace()
    for app in workspace.runningApplications():
      if app.bundleIdentifier() == self.bundle_id:
        return True
      name = app.localizedName()
      if name and unicodedata.normalize('NFC', str(name)) == self.app_name:
        return True
    return False

  def locate(self) -> str:
    script = f'''
      tell application "{self.app_name}"
        if not running then
          return "{NOT_RUNNING}"
        end if
        activate
      end tell
      delay 0.5
      tell application "System Events"
        tell process "{self.app_name}"
          get {{position, size}} of window 1
        end tell
      end tell
    '''
    return self._osascript(script)

  def foreground(self) -> None:
    try:
      subprocess.run(['open', '-b', self.bundle_id], check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError:
      try:
        self._osascript(f'tell application "{self.app_name}" to activate')
      except subprocess.CalledProcessError as e:
        raise TargetNotRunning(f"Cannot bring '{self.app_name}' to the front: {e.stderr}") from e

  def capture_region(self, bounds: WindowBounds, path: Path) -> None:
    region = f"{bounds.x},{bounds.y},{bounds.width},{bounds.height}"
    try:
      subprocess.run(
          ['screencapture', '-x', f'-R{region}', str(path)], check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
      raise CaptureFailed(f"screencapture failed: {e.stderr or e}") from e

  def send_advance_key(self) -> None:
    """Right Arrow via Quartz events to the frontmost app (accessibility permission)"""
    event_down = Quartz.CGEventCreateKeyboardEvent(None, self.key_code, True)
    event_up = Quartz.CGEventCreateKeyboardEvent(None, self.key_code, False)
    if event_down is None or event_up is None:
      raise NavigationFailed(
          "Cannot create keyboard events. Check accessibility permission for this terminal.")
    Quartz.CGEventPost(Quartz.kCGHIDEventTap, event_down)
    Quartz.CGEventPost(Quartz.kCGHIDEventTap, event_up)
    time.sleep(0.05)

