"""
Capture session: capture -> fingerprint -> compare -> advance, until the
book loops back, the page limit is hit, or the user stops or cancels.
"""

import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from rich.console import Console

from .advancer import PageAdvancer
from .assembler import DocumentAssembler
from .capturer import PageCapturer
from .config import Settings
from .errors import DirectoryAccessFailed, NoPagesFound, UnkindleError
from .fingerprint import DuplicateDetector
from .models import (CaptureOptions, CaptureResult, CaptureSession, PageCapture,
                     SessionStatus)
from .pages import page_filename
from .window import TargetWindowLocator, WindowController

console = Console()

ProgressCallback = Callable[[CaptureSession, PageCapture], None]

TRANSITIONS = {
    SessionStatus.IDLE: {SessionStatus.INITIALIZING},
    SessionStatus.INITIALIZING: {SessionStatus.CAPTURING, SessionStatus.CANCELLED,
                                 SessionStatus.FAILED},
    SessionStatus.CAPTURING: {SessionStatus.STOPPING, SessionStatus.CANCELLED,
                              SessionStatus.COMPLETED, SessionStatus.FAILED},
    SessionStatus.STOPPING: {SessionStatus.CANCELLED, SessionStatus.COMPLETED,
                             SessionStatus.FAILED},
}


class CaptureController:
  def __init__(self, options: CaptureOptions, window: WindowController,
               settings: Optional[Settings] = None,
               assembler: Optional[DocumentAssembler] = None,
               on_progress: Optional[ProgressCallback] = None,
               sleep: Callable[[float], None] = time.sleep):
    options.validate()
    settings = settings or Settings()
    self.session = CaptureSession(
        output_directory=Path(options.output_directory),
        capture_delay_ms=options.capture_delay_ms,
        current_page=options.start_page,
        max_pages=options.max_pages,
    )
    self.locator = TargetWindowLocator(window, settings.title_bar_inset)
    self.capturer = PageCapturer(
        window, options.capture_delay_ms, settings.activate_delay_sec, sleep)
    self.advancer = PageAdvancer(window, settings.page_turn_delay_sec, sleep)
    self.detector = DuplicateDetector()
    self.assembler = assembler or DocumentAssembler(
        settings.jpeg_quality, settings.document_name)
    self.on_progress = on_progress
    self.captures: List[PageCapture] = []
    # re-entrant: the SIGINT handler cancels on the thread that may hold it
    self._lock = threading.RLock()

  @property
  def status(self) -> SessionStatus:
    return self.session.status

  def _transition(self, target: SessionStatus) -> bool:
    with self._lock:
      if target not in TRANSITIONS.get(self.session.status, ()):
        return False
      self.session.status = target
      return True

  def stop(self) -> None:
    """Finish the page in flight, then stop and build the document."""
    if self._transition(SessionStatus.STOPPING):
      console.print("[yellow]Stopping after the current page...[/yellow]")

  def cancel(self) -> None:
    """Abandon the session; the newest page is discarded and no document is built."""
    if self._transition(SessionStatus.CANCELLED):
      console.print("[yellow]Cancelling capture...[/yellow]")

  def start(self) -> CaptureResult:
    """Run the session and report the outcome instead of raising."""
    try:
      document_path = self.run()
    except UnkindleError as e:
      console.print(f"[red]Capture failed: {e}[/red]")
      return CaptureResult(success=False, pages_captured=len(self.captures), error=str(e))

    if self.status is SessionStatus.CANCELLED:
      return CaptureResult(success=False, pages_captured=len(self.captures),
                           error="Capture cancelled")
    return CaptureResult(success=True, pages_captured=len(self.captures),
                         document_path=document_path)

  def run(self) -> Optional[Path]:
    """Run the session; returns the document path, or None when cancelled."""
    if not self._transition(SessionStatus.INITIALIZING):
      raise RuntimeError(f"Session already started ({self.status.value})")

    try:
      self._initialize()
    except UnkindleError:
      self._transition(SessionStatus.FAILED)
      raise

    if not self._transition(SessionStatus.CAPTURING):
      # cancelled while the window was being located
      return None

    console.print(f"[blue]Capture delay set to {self.session.capture_delay_ms}ms[/blue]")
    console.print(f"[blue]Starting from page {self.session.current_page}[/blue]")

    try:
      self._capture_loop()
    except UnkindleError as e:
      if self.status is SessionStatus.CANCELLED:
        console.print(f"[yellow]Capture cancelled during an error: {e}[/yellow]")
        self._discard_newest()
        return None
      console.print(f"[red]Error during capture: {e}[/red]")
      self._transition(SessionStatus.FAILED)
      raise

    if self.status is SessionStatus.CANCELLED or not self._transition(SessionStatus.COMPLETED):
      self._discard_newest()
      return None

    console.print(f"[blue]Captured {len(self.captures)} pages[/blue]")
    if not self.captures:
      raise NoPagesFound("No pages were captured in this session")
    return self.assembler.assemble(self.session.output_directory)

  def _initialize(self) -> None:
    try:
      self.session.output_directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
      raise DirectoryAccessFailed(
          f"Cannot create output directory {self.session.output_directory}: {e}") from e
    self.session.bounds = self.locator.locate()
    console.print(f"[blue]Window bounds: {self.session.bounds}[/blue]")

  def _should_continue(self) -> bool:
    return self.status is SessionStatus.CAPTURING and not self.session.limit_reached

  def _capture_loop(self) -> None:
    session = self.session
    last_fingerprint: Optional[str] = None

    while self._should_continue():
      limit = session.max_pages or '∞'
      console.print(
          f"[blue]Capturing page {session.current_page} "
          f"({session.pages_processed + 1}/{limit})[/blue]")

      destination = session.output_directory / page_filename(session.current_page)
      path = self.capturer.capture(session.bounds, destination)
      fingerprint = self.detector.fingerprint(path)

      if self.detector.is_duplicate(last_fingerprint, fingerprint):
        console.print("[green]Page did not change; end of book reached.[/green]")
        path.unlink(missing_ok=True)
        break

      capture = PageCapture(path=path, page_number=session.current_page,
                            fingerprint=fingerprint)
      self.captures.append(capture)
      session.pages_processed += 1
      last_fingerprint = fingerprint
      if self.on_progress:
        self.on_progress(session, capture)

      if self.status is SessionStatus.CAPTURING:
        self.advancer.advance()
        session.current_page += 1

  def _discard_newest(self) -> None:
    if not self.captures:
      return
    newest = self.captures.pop()
    newest.path.unlink(missing_ok=True)
    console.print(f"[yellow]Removed last capture: {newest.path.name}[/yellow]")
