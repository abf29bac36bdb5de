"""
Exception types for NCD KNN.
"""

from typing import Any, Optional


class NCDKNNError(Exception):
  """
  Base exception for all classifier errors.

  Parameters
  ----------
  message : str
      Human-readable error message.
  details : dict, optional
      Structured context for the error (indices, sizes, paths).
  """

  def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
    super().__init__(message)
    self.message = message
    self.details = dict(details or {})


class ConfigurationError(NCDKNNError, ValueError):
  """Raised for invalid k, batch size, corpus or query before any work is dispatched."""


class CompressionError(NCDKNNError):
  """Raised when the compressor fails on an input."""


class DispatchError(NCDKNNError):
  """
  Raised when a batch worker fails, times out, or the merged distances do not
  cover the reference corpus exactly once.

  When ``timed_out`` is set, the stalled worker threads are still running.
  """

  def __init__(self, message: str,
               batch: Optional[tuple[int, int]] = None,
               timed_out: bool = False,
               details: Optional[dict[str, Any]] = None):
    super().__init__(message, details)
    self.batch = batch
    self.timed_out = timed_out
    self.details.update({'batch': batch, 'timed_out': timed_out})


class CorpusLoadError(NCDKNNError):
  """Raised when a corpus file cannot be opened or read."""
