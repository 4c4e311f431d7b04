"""
Page image naming contract: page_<pageNumber>_<timestampMillis>.png

Both the assembler's directory rescan and "continue from last page" parse
these names, so they must stay stable.
"""

import re
import time
from pathlib import Path
from typing import List, NamedTuple, Optional

from .errors import DirectoryAccessFailed

PAGE_PATTERN = re.compile(r"^page_(\d+)_(\d+)\.png$")


class PageFile(NamedTuple):
  path: Path
  page_number: int
  timestamp_ms: int


def page_filename(page_number: int, timestamp_ms: Optional[int] = None) -> str:
  if timestamp_ms is None:
    timestamp_ms = int(time.time() * 1000)
  return f"page_{page_number}_{timestamp_ms}.png"


def parse_page_filename(name: str) -> Optional[PageFile]:
  match = PAGE_PATTERN.match(name)
  if not match:
    return None
  return PageFile(Path(name), int(match.group(1)), int(match.group(2)))


def scan_pages(directory: Path) -> List[PageFile]:
  """Page images in the directory, ascending by page number.

  Files sharing a page number keep the order the directory listed them in.
  """
  directory = Path(directory)
  try:
    entries = list(directory.iterdir())
  except OSError as e:
    raise DirectoryAccessFailed(f"Cannot read directory {directory}: {e}") from e

  pages: List[PageFile] = []
  for entry in entries:
    parsed = parse_page_filename(entry.name)
    if parsed is None or not entry.is_file():
      continue
    pages.append(parsed._replace(path=entry))

  pages.sort(key=lambda p: p.page_number)
  return pages


def last_page_number(directory: Path) -> int:
  """Highest captured page number, 0 if none (or no directory yet)."""
  directory = Path(directory)
  if not directory.is_dir():
    return 0
  return max((p.page_number for p in scan_pages(directory)), default=0)
