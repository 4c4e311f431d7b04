"""
Page images -> one PDF.

The assembler works from what is on disk, not from the capture session, so
pages left behind by an earlier (even crashed) run are picked up too.
"""

import io
import os
from pathlib import Path
from typing import Tuple

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from rich.console import Console

from .errors import AssemblyFailed, NoPagesFound
from .pages import scan_pages

console = Console()

JPEG_QUALITY = 85
DOCUMENT_NAME = "book.pdf"


class DocumentAssembler:
  def __init__(self, jpeg_quality: int = JPEG_QUALITY, document_name: str = DOCUMENT_NAME):
    self.jpeg_quality = jpeg_quality
    self.document_name = document_name

  def assemble(self, directory: Path) -> Path:
    """Write every page_*.png in ``directory`` into ``<directory>/book.pdf``."""
    directory = Path(directory)
    pages = scan_pages(directory)
    if not pages:
      raise NoPagesFound(f"No page_*.png files found in {directory}")

    pdf_path = directory / self.document_name
    tmp_path = directory / f".{self.document_name}.tmp"
    console.print(f"[blue]Creating PDF from {len(pages)} pages: {pdf_path}[/blue]")

    try:
      c = canvas.Canvas(str(tmp_path))
      for i, page in enumerate(pages):
        reader, (width, height) = self._compress_to_jpeg(page.path)
        # one image pixel = one PDF point, no scaling or margins
        c.setPageSize((width, height))
        c.drawImage(reader, 0, 0, width=width, height=height)
        c.showPage()
        console.print(
            f"[green]Added PDF page {i + 1}/{len(pages)} - {page.path.name}[/green]")
      c.save()
      os.replace(tmp_path, pdf_path)
    except Exception as e:
      tmp_path.unlink(missing_ok=True)
      raise AssemblyFailed(f"Failed to create PDF: {e}") from e

    file_size_mb = pdf_path.stat().st_size / (1024 * 1024)
    console.print(f"[green]PDF created: {pdf_path}[/green]")
    console.print(f"[blue]Total pages: {len(pages)}, file size: {file_size_mb:.2f} MB[/blue]")
    return pdf_path

  def _compress_to_jpeg(self, image_path: Path) -> Tuple[ImageReader, Tuple[int, int]]:
    """Re-encode a page image as JPEG in memory."""
    with Image.open(image_path) as img:
      if img.mode not in ('RGB', 'L'):
        img = img.convert('RGB')
      buffer = io.BytesIO()
      img.save(buffer, format='JPEG', quality=self.jpeg_quality, optimize=True)
      size = img.size
    buffer.seek(0)
    return ImageReader(buffer), size
