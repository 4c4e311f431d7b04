"""
Tests for the capture session: termination, stop/cancel and failure handling.
"""

import threading

import pytest
from PyPDF2 import PdfReader

from conftest import COLORS, FakeWindow, write_page
from unkindle.controller import CaptureController
from unkindle.errors import (CaptureFailed, DirectoryAccessFailed, NavigationFailed,
                             TargetNotRunning)
from unkindle.models import CaptureOptions, SessionStatus


def page_files(directory):
  return sorted(directory.glob("page_*.png"), key=lambda p: int(p.name.split('_')[1]))


def page_numbers(directory):
  return [int(p.name.split('_')[1]) for p in page_files(directory)]


def pdf_page_count(path):
  return len(PdfReader(str(path)).pages)


class TestCaptureController:

  @pytest.fixture
  def out_dir(self, tmp_path):
    return tmp_path / "book"

  def make_controller(self, out_dir, window, settings, no_sleep, **options):
    options.setdefault('capture_delay_ms', 0)
    return CaptureController(CaptureOptions(out_dir, **options), window, settings, sleep=no_sleep)

  def test_stops_at_max_pages(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS)
    controller = self.make_controller(out_dir, window, settings, no_sleep, start_page=1, max_pages=3)

    result = controller.start()

    assert result.success
    assert result.pages_captured == 3
    assert controller.session.pages_processed == 3
    assert controller.status is SessionStatus.COMPLETED
    assert window.capture_calls == 3
    assert page_numbers(out_dir) == [1, 2, 3]
    assert result.document_path == out_dir / "book.pdf"
    assert pdf_page_count(result.document_path) == 3

  def test_repeated_page_ends_the_book(self, out_dir, settings, no_sleep):
    # the reader stays on the last page, so the third capture repeats the second
    window = FakeWindow(COLORS[:2])
    controller = self.make_controller(out_dir, window, settings, no_sleep)

    result = controller.start()

    assert result.success
    assert result.pages_captured == 2
    assert window.capture_calls == 3
    assert page_numbers(out_dir) == [1, 2]
    assert [c.page_number for c in controller.captures] == [1, 2]
    assert pdf_page_count(result.document_path) == 2

  def test_only_previous_page_is_compared(self, out_dir, settings, no_sleep):
    window = FakeWindow([COLORS[0], COLORS[1], COLORS[0]])
    controller = self.make_controller(out_dir, window, settings, no_sleep)

    result = controller.start()

    assert result.pages_captured == 3
    assert page_numbers(out_dir) == [1, 2, 3]

  def test_page_numbers_continue_from_start_page(self, out_dir, settings, no_sleep):
    out_dir.mkdir()
    write_page(out_dir, 1, 1)
    write_page(out_dir, 2, 2)
    window = FakeWindow(COLORS)
    controller = self.make_controller(out_dir, window, settings, no_sleep, start_page=3, max_pages=2)

    result = controller.start()

    assert [c.page_number for c in controller.captures] == [3, 4]
    assert page_numbers(out_dir) == [1, 2, 3, 4]
    # earlier run's pages are assembled as well
    assert pdf_page_count(result.document_path) == 4

  def test_stop_finishes_current_page(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS)
    controller = self.make_controller(out_dir, window, settings, no_sleep)
    window.on_capture = lambda n: controller.stop() if n == 2 else None

    result = controller.start()

    assert result.success
    assert result.pages_captured == 2
    assert window.advances == 1
    assert controller.status is SessionStatus.COMPLETED
    assert pdf_page_count(result.document_path) == 2

  def test_cancel_removes_only_newest_page(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS)
    controller = self.make_controller(out_dir, window, settings, no_sleep)
    window.on_capture = lambda n: controller.cancel() if n == 3 else None

    result = controller.start()

    assert not result.success
    assert result.error == "Capture cancelled"
    assert result.pages_captured == 2
    assert controller.status is SessionStatus.CANCELLED
    assert page_numbers(out_dir) == [1, 2]
    assert not (out_dir / "book.pdf").exists()

  def test_cancel_after_stop(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS)
    controller = self.make_controller(out_dir, window, settings, no_sleep)

    def stop_then_cancel(n):
      if n == 2:
        controller.stop()
        controller.cancel()

    window.on_capture = stop_then_cancel
    result = controller.start()

    assert controller.status is SessionStatus.CANCELLED
    assert page_numbers(out_dir) == [1]
    assert result.document_path is None

  def test_cancel_while_locating_window(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS)
    controller = self.make_controller(out_dir, window, settings, no_sleep)
    locate = window.locate

    def locate_then_cancel():
      controller.cancel()
      return locate()

    window.locate = locate_then_cancel
    result = controller.start()

    assert not result.success
    assert window.capture_calls == 0
    assert controller.status is SessionStatus.CANCELLED

  def test_cancel_during_failing_capture(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS)
    window.fail_capture_at = 3
    controller = self.make_controller(out_dir, window, settings, no_sleep)
    foreground = window.foreground

    def cancel_before_third_capture():
      if window.capture_calls == 2:
        controller.cancel()
      foreground()

    window.foreground = cancel_before_third_capture
    result = controller.start()

    assert result.error == "Capture cancelled"
    assert result.pages_captured == 1
    assert controller.status is SessionStatus.CANCELLED
    assert page_numbers(out_dir) == [1]
    assert not (out_dir / "book.pdf").exists()

  def test_cancel_while_lock_is_held(self, out_dir, settings, no_sleep):
    # SIGINT runs cancel() on the main thread, possibly inside _transition
    controller = self.make_controller(out_dir, FakeWindow(COLORS), settings, no_sleep)
    controller._transition(SessionStatus.INITIALIZING)

    def cancel_holding_lock():
      with controller._lock:
        controller.cancel()

    worker = threading.Thread(target=cancel_holding_lock, daemon=True)
    worker.start()
    worker.join(2)

    assert not worker.is_alive()
    assert controller.status is SessionStatus.CANCELLED

  def test_capture_error_keeps_earlier_pages(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS)
    window.fail_capture_at = 3
    controller = self.make_controller(out_dir, window, settings, no_sleep)

    with pytest.raises(CaptureFailed):
      controller.run()

    assert controller.status is SessionStatus.FAILED
    assert page_numbers(out_dir) == [1, 2]
    assert not (out_dir / "book.pdf").exists()

  def test_navigation_error_is_fatal(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS)
    window.fail_advance = True
    controller = self.make_controller(out_dir, window, settings, no_sleep)

    result = controller.start()

    assert not result.success
    assert "navigate" in result.error
    assert controller.status is SessionStatus.FAILED
    assert window.capture_calls == 1
    assert page_numbers(out_dir) == [1]

  def test_target_not_running_fails_before_capture(self, out_dir, settings, no_sleep):
    window = FakeWindow(COLORS, running=False)
    controller = self.make_controller(out_dir, window, settings, no_sleep)

    with pytest.raises(TargetNotRunning):
      controller.run()

    assert controller.status is SessionStatus.FAILED
    assert window.capture_calls == 0

  def test_output_directory_not_creatable(self, tmp_path, settings, no_sleep):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    controller = self.make_controller(blocker / "book", FakeWindow(COLORS), settings, no_sleep)

    with pytest.raises(DirectoryAccessFailed):
      controller.run()
    assert controller.status is SessionStatus.FAILED

  def test_progress_callback(self, out_dir, settings, no_sleep):
    seen = []
    controller = CaptureController(
        CaptureOptions(out_dir, 0, 5, 2), FakeWindow(COLORS), settings,
        on_progress=lambda session, capture: seen.append((session.pages_processed, capture.page_number)),
        sleep=no_sleep)

    controller.start()

    assert seen == [(1, 5), (2, 6)]

  def test_session_runs_once(self, out_dir, settings, no_sleep):
    controller = self.make_controller(out_dir, FakeWindow(COLORS), settings, no_sleep, max_pages=1)
    controller.run()
    with pytest.raises(RuntimeError):
      controller.run()

  def test_stop_before_start_is_ignored(self, out_dir, settings, no_sleep):
    controller = self.make_controller(out_dir, FakeWindow(COLORS), settings, no_sleep, max_pages=1)
    controller.stop()
    assert controller.status is SessionStatus.IDLE

  @pytest.mark.parametrize("options", [
      dict(capture_delay_ms=-1),
      dict(start_page=0),
      dict(max_pages=0),
  ])
  def test_invalid_options(self, out_dir, settings, no_sleep, options):
    with pytest.raises(ValueError):
      self.make_controller(out_dir, FakeWindow(COLORS), settings, no_sleep, **options)
