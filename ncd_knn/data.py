"""
Labeled samples and the CSV corpus loader.
"""

import csv
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import CorpusLoadError

logger = logging.getLogger(__name__)

LABEL_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class LabeledSample:
  """A text with its integer class id."""

  label: int
  text: str


def load_corpus(path: Union[str, Path], limit: Optional[int] = None) -> list[LabeledSample]:
  """
  Load a headerless ``label,title,body`` CSV file into labeled samples.

  The sample text is the title and body joined with a comma. Rows that do not
  have exactly three columns, whose label is not an integer, or that are not
  valid UTF-8 are skipped with a warning.

  Parameters
  ----------
  path : str or Path
      CSV file to read
  limit : int, optional
      Stop after this many valid samples

  Returns
  -------
  list[LabeledSample]
      Samples in file order
  """
  path = Path(path)
  logger.info(f"Reading corpus: {path}")

  samples = []
  skipped = 0
  try:
    with path.open(newline='', encoding='utf-8', errors='surrogateescape') as f:
      reader = csv.reader(f)
      while limit is None or len(samples) < limit:
        try:
          row = next(reader)
        except StopIteration:
          break
        except csv.Error as e:
          logger.warning(f"{path}:{reader.line_num}: {e}; skipping")
          skipped += 1
          continue

        if len(row) != 3:
          logger.warning(f"{path}:{reader.line_num}: expected 3 columns, "
                         f"got {len(row)}; skipping")
          skipped += 1
          continue

        if not _is_valid_utf8(row):
          logger.warning(f"{path}:{reader.line_num}: invalid UTF-8; skipping")
          skipped += 1
          continue

        label, title, body = row
        if not LABEL_PATTERN.fullmatch(label):
          logger.warning(f"{path}:{reader.line_num}: invalid label {label!r}; skipping")
          skipped += 1
          continue

        samples.append(LabeledSample(int(label), f"{title},{body}"))
  except OSError as e:
    raise CorpusLoadError(f"Cannot read corpus {path}: {e}", details={'path': str(path)}) from e

  logger.info(f"Loaded {len(samples)} samples from {path} ({skipped} rows skipped)")
  return samples


def _is_valid_utf8(row: list[str]) -> bool:
  """Undecodable bytes survive ``surrogateescape`` as lone surrogates."""
  try:
    for value in row:
      value.encode('utf-8')
  except UnicodeEncodeError:
    return False
  return True
