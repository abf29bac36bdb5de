"""
Run configuration for NCD KNN.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional, Sequence

from .errors import ConfigurationError

# AG News class ids are 1-based.
AG_NEWS_LABELS = ("World", "Sports", "Business", "Sci/Tech")


def lookup_label_name(label: Any, label_names: Sequence[str]) -> str:
  """Map a 1-based integer label to its name, or its string form if unnamed."""
  if isinstance(label, int) and 1 <= label <= len(label_names):
    return label_names[label - 1]
  return str(label)


@dataclass
class ClassifierConfig:
  """
  Settings for one prediction or evaluation run.

  Parameters
  ----------
  k : int, default=10
      Number of nearest neighbors that vote.
  batch_size : int, default=10000
      Reference samples per worker batch.
  max_workers : int, optional
      Worker threads. Uses the executor default if None.
  timeout : float, optional
      Wall-clock limit in seconds for all batches of one prediction.
  train_path, test_path : str, optional
      CSV corpora. A test path switches the CLI to evaluation mode.
  train_limit, test_limit : int
      Maximum samples loaded from each corpus.
  query : str, optional
      Text to classify in single-prediction mode.
  label_names : tuple[str, ...]
      Display names for labels ``1..len(label_names)``.
  """

  k: int = 10
  batch_size: int = 10000
  max_workers: Optional[int] = None
  timeout: Optional[float] = None
  train_path: Optional[str] = None
  test_path: Optional[str] = None
  train_limit: int = 120000
  test_limit: int = 1000
  query: Optional[str] = None
  label_names: tuple[str, ...] = field(default_factory=lambda: AG_NEWS_LABELS)

  def validate(self) -> None:
    """Raise ConfigurationError if any setting is out of range."""
    if self.k <= 0:
      raise ConfigurationError(f"k must be positive, got {self.k}")
    if self.batch_size <= 0:
      raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")
    if self.max_workers is not None and self.max_workers <= 0:
      raise ConfigurationError(f"max_workers must be positive, got {self.max_workers}")
    if self.timeout is not None and self.timeout <= 0:
      raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
    if self.train_limit <= 0 or self.test_limit <= 0:
      raise ConfigurationError("train_limit and test_limit must be positive")
    if self.train_path is None:
      raise ConfigurationError("A training corpus path is required")
    if self.test_path is None and not (self.query and self.query.strip()):
      raise ConfigurationError("Either a test corpus path or a non-empty query is required")

  @property
  def evaluation_mode(self) -> bool:
    return self.test_path is not None

  def label_name(self, label: int) -> str:
    return lookup_label_name(label, self.label_names)

  def to_dict(self) -> dict[str, Any]:
    return asdict(self)

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> 'ClassifierConfig':
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
      raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
    if 'label_names' in data:
      data = {**data, 'label_names': tuple(data['label_names'])}
    return cls(**data)
