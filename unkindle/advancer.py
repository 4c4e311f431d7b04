import time
from typing import Callable

from .errors import NavigationFailed
from .window import WindowController


class PageAdvancer:
  def __init__(self, window: WindowController, page_turn_delay_sec: float = 1.0,
               sleep: Callable[[float], None] = time.sleep):
    self.window = window
    self.page_turn_delay_sec = page_turn_delay_sec
    self.sleep = sleep

  def advance(self) -> None:
    """Turn to the next page and wait for it to render. Never retried."""
    try:
      self.window.send_advance_key()
    except NavigationFailed:
      raise
    except Exception as e:
      raise NavigationFailed(f"Failed to navigate to next page: {e}") from e
    self.sleep(self.page_turn_delay_sec)
