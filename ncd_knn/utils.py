"""
Utility functions for NCD KNN.
"""

import gzip
import logging
import zlib
from collections import Counter
from typing import Any, Optional, Sequence, Union

import numpy as np

from .errors import CompressionError

logger = logging.getLogger(__name__)

# Fixed so that distances stay comparable across calls.
COMPRESSION_LEVEL = 6
SEPARATOR = " "


def compressed_size(data: Union[str, bytes]) -> int:
  """
  Get the gzip-compressed size of a string or byte sequence.

  Parameters
  ----------
  data : str or bytes
      Input to compress. Strings are encoded as UTF-8.

  Returns
  -------
  int
      Compressed size in bytes
  """
  if isinstance(data, str):
    data = data.encode('utf-8')

  try:
    return len(gzip.compress(data, compresslevel=COMPRESSION_LEVEL))
  except (zlib.error, MemoryError) as e:
    raise CompressionError(
      f"Failed to compress {len(data)} bytes: {e}",
      details={'input_size': len(data)},
    ) from e


def normalized_compression_distance(cx1: int, cx2: int, cx1x2: int) -> float:
  """
  Calculate Normalized Compression Distance from three compressed sizes.

  NCD(x1,x2) = (C(x1x2) - min(C(x1), C(x2))) / max(C(x1), C(x2))

  Parameters
  ----------
  cx1, cx2 : int
      Compressed sizes of each input alone
  cx1x2 : int
      Compressed size of the concatenated inputs

  Returns
  -------
  float
      Normalized compression distance (0 = identical, higher = more different)
  """
  max_size = max(cx1, cx2)
  if max_size == 0:
    raise ValueError("NCD is undefined when both inputs compress to 0 bytes")

  return (cx1x2 - min(cx1, cx2)) / float(max_size)


def ncd(x1: str, x2: str, cx1: Optional[int] = None) -> float:
  """
  Calculate NCD between two strings.

  Parameters
  ----------
  x1 : str
      Query text
  x2 : str
      Reference text
  cx1 : int, optional
      Precomputed compressed size of ``x1``. Pass it when comparing one
      query against many references.

  Returns
  -------
  float
      Normalized compression distance
  """
  if cx1 is None:
    cx1 = compressed_size(x1)
  cx2 = compressed_size(x2)
  cx1x2 = compressed_size(x1 + SEPARATOR + x2)
  return normalized_compression_distance(cx1, cx2, cx1x2)


def partition_batches(n: int, batch_size: int) -> list[tuple[int, int]]:
  """
  Split ``[0, n)`` into contiguous half-open ranges.

  Parameters
  ----------
  n : int
      Number of items
  batch_size : int
      Maximum items per batch

  Returns
  -------
  list[tuple[int, int]]
      ``ceil(n / batch_size)`` ranges ``(start, end)``; the last may be shorter
  """
  if batch_size <= 0:
    raise ValueError(f"batch_size must be positive, got {batch_size}")

  batches = [(start, min(start + batch_size, n)) for start in range(0, n, batch_size)]
  logger.debug(f"Partitioned {n} samples into {len(batches)} batches")
  return batches


def get_corpus_info(texts: Sequence[str], labels: Sequence[Any]) -> dict[str, Any]:
  """
  Get summary information about a labeled corpus.

  Parameters
  ----------
  texts : Sequence[str]
      Sample texts
  labels : Sequence
      Sample labels, aligned with ``texts``

  Returns
  -------
  dict
      Dictionary with corpus information
  """
  lengths = np.array([len(t) for t in texts], dtype=np.int64)
  label_counts = Counter(labels)

  return {
    'num_samples': len(texts),
    'num_classes': len(label_counts),
    'label_counts': dict(sorted(label_counts.items())),
    'mean_text_length': float(lengths.mean()) if len(lengths) else 0.0,
    'max_text_length': int(lengths.max()) if len(lengths) else 0,
  }
