#!/usr/bin/env python3
"""
unkindle - capture every page of an open e-reader book into one PDF
"""

import argparse
import curses
import re
import signal
import subprocess
import sys
import unicodedata
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from .assembler import DocumentAssembler
from .config import Settings
from .controller import CaptureController
from .errors import UnkindleError
from .models import CaptureOptions, CaptureResult, CaptureSession, PageCapture
from .pages import last_page_number
from .window import WindowController

console = Console()


def sanitize_title(title: str) -> str:
  """Book title -> folder name ("My Book: Part 1" -> "my_book_part_1")"""
  title = unicodedata.normalize('NFC', title)
  title = re.sub(r'[\x00-\x1f/\\:*?"<>|]', '', title)
  title = re.sub(r'\s+', '_', title.strip()).lower()
  return title.strip('.')


def list_books(library_dir: Path) -> List[str]:
  library_dir.mkdir(parents=True, exist_ok=True)
  return sorted(entry.name for entry in library_dir.iterdir() if entry.is_dir())


class InteractiveBookSelector:
  NEW_BOOK = "+ New book"
  MOVES = {curses.KEY_UP: -1, ord('k'): -1, curses.KEY_DOWN: 1, ord('j'): 1}

  def __init__(self, library_dir: Path):
    self.library_dir = library_dir
    self.selected_index = 0

  def label(self, choice: str) -> str:
    """Book name with its progress ("dune  (last page 42)")"""
    if choice == self.NEW_BOOK:
      return choice
    last_page = last_page_number(self.library_dir / choice)
    return f"{choice}  (last page {last_page})" if last_page else f"{choice}  (no pages yet)"

  def display_books(self, choices: List[str]):
    table = Table(title="Available books", show_header=False, box=None)
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Book", style="green")
    for i, choice in enumerate(choices):
      table.add_row(str(i), self.label(choice))
    console.print(table)

  def get_user_selection(self, books: List[str]) -> Optional[str]:
    """Returns a book name, NEW_BOOK, or None when the user quits."""
    choices = books + [self.NEW_BOOK]
    try:
      idx = curses.wrapper(self._curses_select, [self.label(c) for c in choices])
    except curses.error:
      # no usable terminal, fall back to numbered input
      self.display_books(choices)
      choice = Prompt.ask(
          "Choose a book (number, q to quit)",
          choices=[str(i) for i in range(len(choices))] + ['q'])
      if choice == 'q':
        return None
      idx = int(choice)
    if idx is None:
      return None
    self.selected_index = idx
    return choices[idx]

  def _draw(self, stdscr, labels: List[str], selected: int) -> None:
    stdscr.erase()
    rows, _ = stdscr.getmaxyx()
    lines = [(0, "Books (Up/Down move, Enter select, q quit)", curses.A_BOLD)]
    lines += [(i + 2, label, curses.A_REVERSE if i == selected else curses.A_NORMAL)
              for i, label in enumerate(labels)]
    for row, text, attr in lines:
      if row < rows:
        try:
          stdscr.addstr(row, 2 if row else 0, text, attr)
        except curses.error:
          # text wider than the terminal
          pass
    stdscr.refresh()

  def _curses_select(self, stdscr, labels: List[str]) -> Optional[int]:
    curses.curs_set(0)
    stdscr.keypad(True)
    selected = self.selected_index

    while True:
      self._draw(stdscr, labels, selected)
      key = stdscr.getch()
      if key in self.MOVES:
        selected = (selected + self.MOVES[key]) % len(labels)
      elif key in (curses.KEY_ENTER, 10, 13):
        return selected
      elif key in (ord('q'), 27):
        return None


def ask_configuration(settings: Settings, delay_ms: int) -> Optional[CaptureOptions]:
  """Interactive book / start page / page limit questions."""
  books = list_books(settings.library_dir)
  choice = InteractiveBookSelector(settings.library_dir).get_user_selection(books)
  if choice is None:
    return None

  if choice == InteractiveBookSelector.NEW_BOOK:
    title = sanitize_title(Prompt.ask("Enter book title"))
    if not title:
      console.print("[red]The title is empty after removing invalid characters.[/red]")
      return None
    output_directory = settings.library_dir / title
    output_directory.mkdir(parents=True, exist_ok=True)
  else:
    output_directory = settings.library_dir / choice

  start_page = 1
  last_page = last_page_number(output_directory)
  if last_page > 0:
    answer = Prompt.ask(f"Continue from page {last_page + 1}?", default="yes")
    if answer.lower() in ('yes', 'y'):
      start_page = last_page + 1

  while True:
    max_pages_str = Prompt.ask("How many pages to capture? (Enter for unlimited)", default="")
    if not max_pages_str:
      max_pages = None
      break
    try:
      max_pages = int(max_pages_str)
    except ValueError:
      console.print("[red]Enter a number.[/red]")
      continue
    if max_pages >= 1:
      break
    console.print("[red]Enter a number of at least 1.[/red]")

  return CaptureOptions(output_directory, delay_ms, start_page, max_pages)


def options_from_args(args: argparse.Namespace) -> CaptureOptions:
  output_directory = Path(args.output).expanduser()
  start_page = args.start_page
  if args.resume:
    start_page = last_page_number(output_directory) + 1
  return CaptureOptions(output_directory, args.delay, start_page, args.max_pages)


def start_hotkeys(controller: CaptureController):
  """Global hotkeys (the e-reader has focus): 'c' stops and builds the PDF, Esc cancels."""
  from pynput import keyboard

  def on_press(key):
    if key == keyboard.Key.esc:
      controller.cancel()
      return False
    if getattr(key, 'char', None) in ('c', 'C'):
      controller.stop()

  listener = keyboard.Listener(on_press=on_press)
  listener.start()
  return listener


def print_progress(session: CaptureSession, capture: PageCapture) -> None:
  console.print(f"[green]Saved page {capture.page_number}: {capture.path.name}[/green]")


def run_capture(options: CaptureOptions, window: WindowController, settings: Settings,
                hotkeys: bool = True) -> CaptureResult:
  controller = CaptureController(options, window, settings, on_progress=print_progress)

  previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: controller.cancel())
  listener = start_hotkeys(controller) if hotkeys else None
  if hotkeys:
    console.print("Press [bold]c[/bold] to stop capturing and create the PDF")
  console.print("Press [bold]Esc[/bold] or [bold]Ctrl+C[/bold] to cancel everything\n")
  try:
    return controller.start()
  finally:
    if listener is not None:
      listener.stop()
    signal.signal(signal.SIGINT, previous_handler)


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
      prog="unkindle",
      description="Capture every page of the open e-reader book and build book.pdf",
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
examples:
  # interactive mode (choose a book under ./books)
  unkindle

  # capture into a folder, at most 50 pages
  unkindle -o ~/Desktop/Unkindle/my_book -m 50

  # continue where the last run stopped
  unkindle -o ~/Desktop/Unkindle/my_book --resume

  # only rebuild book.pdf from pages already on disk
  unkindle -o ~/Desktop/Unkindle/my_book --assemble-only
        """
  )
  parser.add_argument('-o', '--output', help='output folder for page images and book.pdf')
  parser.add_argument('-d', '--delay', type=int, default=1000,
                      help='wait before each capture in milliseconds (default: 1000)')
  parser.add_argument('-s', '--start-page', type=int, default=1,
                      help='page number of the first capture (default: 1)')
  parser.add_argument('-m', '--max-pages', type=int, default=None,
                      help='stop after this many pages (default: unlimited)')
  parser.add_argument('--resume', action='store_true',
                      help='start after the highest page already in the output folder')
  parser.add_argument('--library', help='folder holding one sub-folder per book (default: ./books)')
  parser.add_argument('--app', help='name of the e-reader application (default: Amazon Kindle)')
  parser.add_argument('--title-bar-inset', type=int,
                      help='pixels cut from the top of the window (default: 22)')
  parser.add_argument('--assemble-only', action='store_true',
                      help='skip capturing and rebuild book.pdf from the output folder')
  parser.add_argument('--open', action='store_true',
                      help='open the output folder in Finder when done')
  parser.add_argument('--no-hotkeys', action='store_true',
                      help='do not listen for the global c / Esc keys')
  return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
  settings = Settings.from_env()
  if args.library:
    settings.library_dir = Path(args.library).expanduser()
  if args.app:
    settings.app_name = args.app
  if args.title_bar_inset is not None:
    settings.title_bar_inset = args.title_bar_inset
  return settings


def open_folder(folder_path: Path) -> None:
  """Reveal the folder in Finder"""
  try:
    subprocess.run(['open', str(folder_path)], check=True)
    console.print(f"[green]Opened folder: {folder_path}[/green]")
  except (OSError, subprocess.CalledProcessError):
    console.print(f"[yellow]Could not open folder: {folder_path}[/yellow]")


def assemble_only(directory: Path, settings: Settings, open_when_done: bool = False) -> int:
  assembler = DocumentAssembler(settings.jpeg_quality, settings.document_name)
  try:
    document_path = assembler.assemble(directory)
  except UnkindleError as e:
    console.print(f"[red]{e}[/red]")
    return 1
  console.print(f"[green]✓ Rebuilt {document_path}[/green]")
  if open_when_done:
    open_folder(document_path.parent)
  return 0


def main(argv: Optional[List[str]] = None, window: Optional[WindowController] = None) -> int:
  load_dotenv()
  args = build_parser().parse_args(argv)
  try:
    settings = settings_from_args(args)
  except ValueError as e:
    # bad UNKINDLE_* value in the environment or .env
    console.print(f"[red]Invalid setting: {e}[/red]")
    return 2

  console.print(Panel.fit(
      "[bold blue]unkindle[/bold blue]\n"
      f"Captures the open '{settings.app_name}' book into a PDF",
      title="start"
  ))

  if args.assemble_only:
    if not args.output:
      console.print("[red]--assemble-only needs --output[/red]")
      return 2
    return assemble_only(Path(args.output).expanduser(), settings, args.open)

  try:
    if args.output:
      options = options_from_args(args)
    else:
      options = ask_configuration(settings, args.delay)
      if options is None:
        console.print("[yellow]Nothing to do, exiting.[/yellow]")
        return 0
    options.validate()
  except ValueError as e:
    console.print(f"[red]{e}[/red]")
    return 2

  if window is None:
    from .macos import MacWindowController
    window = MacWindowController(settings)

  result = run_capture(options, window, settings, hotkeys=not args.no_hotkeys)

  if result.success:
    console.print(f"\n[green]✓ Captured {result.pages_captured} pages: {result.document_path}[/green]")
    if args.open and result.document_path:
      open_folder(result.document_path.parent)
    return 0

  console.print(f"\n[red]✗ {result.error} ({result.pages_captured} pages kept on disk)[/red]")
  return 1


if __name__ == "__main__":
  sys.exit(main())
