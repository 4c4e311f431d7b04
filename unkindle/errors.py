"""Errors raised by the capture engine and the document assembler."""


class UnkindleError(Exception):
  """Base class for every error the capture engine reports."""


class TargetNotRunning(UnkindleError):
  """The e-reader application or its window could not be found."""


class WindowGeometryUnavailable(UnkindleError):
  """The window query did not return exactly four integers."""


class CaptureFailed(UnkindleError):
  """The screenshot was not written or came out empty."""


class NavigationFailed(UnkindleError):
  """The "next page" key could not be delivered."""


class NoPagesFound(UnkindleError):
  """No page images are available to assemble."""


class AssemblyFailed(UnkindleError):
  """Decoding, re-encoding or writing the document failed."""


class DirectoryAccessFailed(UnkindleError):
  """The output directory could not be created or read."""
