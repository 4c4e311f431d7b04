import hashlib
from pathlib import Path
from typing import Optional


class DuplicateDetector:
  """Byte-identical page detection (md5 of the file, not perceptual)."""

  def fingerprint(self, path: Path) -> str:
    with open(path, 'rb') as f:
      return hashlib.md5(f.read()).hexdigest()

  def is_duplicate(self, previous: Optional[str], current: str) -> bool:
    # Only the immediately previous page is compared; an earlier page
    # showing up again later is not treated as a loop.
    return previous is not None and previous == current
