"""
Policy constants for the capture engine.

Every value can be overridden with an ``UNKINDLE_*`` environment variable
(the CLI also reads a ``.env`` file from the working directory).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

ENV_PREFIX = "UNKINDLE_"


def _env(name: str, default: str) -> str:
  return os.getenv(ENV_PREFIX + name, default)


@dataclass
class Settings:
  # Target application
  app_name: str = "Amazon Kindle"
  bundle_id: str = "com.amazon.Kindle"
  # Window chrome excluded from the capture, not measured
  title_bar_inset: int = 22
  # Timing parameters
  activate_delay_sec: float = 0.5
  page_turn_delay_sec: float = 1.0
  advance_key_code: int = 124  # Right Arrow
  # Document output
  jpeg_quality: int = 85
  document_name: str = "book.pdf"
  library_dir: Path = field(default_factory=lambda: Path.cwd() / "books")

  @classmethod
  def from_env(cls) -> "Settings":
    defaults = cls()
    return cls(
        app_name=_env("APP_NAME", defaults.app_name),
        bundle_id=_env("BUNDLE_ID", defaults.bundle_id),
        title_bar_inset=int(_env("TITLE_BAR_INSET", str(defaults.title_bar_inset))),
        activate_delay_sec=float(_env("ACTIVATE_DELAY", str(defaults.activate_delay_sec))),
        page_turn_delay_sec=float(_env("PAGE_TURN_DELAY", str(defaults.page_turn_delay_sec))),
        advance_key_code=int(_env("ADVANCE_KEY_CODE", str(defaults.advance_key_code))),
        jpeg_quality=int(_env("JPEG_QUALITY", str(defaults.jpeg_quality))),
        document_name=_env("DOCUMENT_NAME", defaults.document_name),
        library_dir=Path(_env("LIBRARY_DIR", str(defaults.library_dir))).expanduser(),
    )
