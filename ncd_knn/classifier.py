"""
Main classifier module for NCD KNN.
"""

import logging
from collections import Counter
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np

from .config import ClassifierConfig, lookup_label_name
from .data import LabeledSample
from .errors import ConfigurationError, DispatchError
from .utils import compressed_size, get_corpus_info, ncd, partition_batches

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistanceRecord:
  """Distance from the query to one reference sample."""

  index: int
  ncd: float


@dataclass(frozen=True)
class Prediction:
  """A predicted label with the neighbors and votes that produced it."""

  label: Any
  label_name: Optional[str] = None
  votes: dict[Any, int] = field(default_factory=dict)
  neighbors: tuple[DistanceRecord, ...] = ()


class NCDKNNClassifier:
  """
  K-Nearest Neighbors classifier using gzip compression for short texts.

  This classifier implements the Normalized Compression Distance (NCD) method
  from "Low-Resource Text Classification: A Parameter-Free Classification
  Method with Compressors". The distances from a query to the reference
  corpus are computed in fixed-size batches on a thread pool.

  Parameters
  ----------
  k : int, default=10
      Number of nearest neighbors to consider for classification.
  batch_size : int, default=10000
      Number of reference samples handled by one worker task.
  max_workers : int, optional
      Size of the worker pool. Uses the ThreadPoolExecutor default if None.
  timeout : float, optional
      Seconds to wait for all batches of one prediction before raising
      DispatchError. Running batches cannot be interrupted and keep their
      threads busy until they return.
  label_names : Sequence[str], optional
      Display names for labels ``1..len(label_names)``.

  Attributes
  ----------
  training_data_ : tuple[str, ...]
      Reference texts after fitting.
  training_labels_ : tuple[Any, ...]
      Reference labels after fitting.
  is_fitted_ : bool
      Whether the classifier has been fitted.
  """

  def __init__(
      self,
      k: int = 10,
      batch_size: int = 10000,
      max_workers: Optional[int] = None,
      timeout: Optional[float] = None,
      label_names: Optional[Sequence[str]] = None,
  ):
    self.k = k
    self.batch_size = batch_size
    self.max_workers = max_workers
    self.timeout = timeout
    self.label_names = tuple(label_names) if label_names else ()

    self.training_data_ = ()
    self.training_labels_ = ()
    self.is_fitted_ = False

  @classmethod
  def from_config(cls, config: ClassifierConfig) -> 'NCDKNNClassifier':
    return cls(
      k=config.k,
      batch_size=config.batch_size,
      max_workers=config.max_workers,
      timeout=config.timeout,
      label_names=config.label_names,
    )

  def _validate_text(self, text: str) -> None:
    """Validate that a query is a non-empty string."""
    if not isinstance(text, str):
      raise TypeError("Input must be a string")

    if not text:
      raise ConfigurationError("Query text must not be empty")

  def _check_ready(self) -> None:
    if not self.is_fitted_:
      raise ValueError("Classifier must be fitted before prediction")

    n = len(self.training_data_)
    if self.k <= 0:
      raise ConfigurationError(f"k must be positive, got {self.k}")
    if self.k > n:
      raise ConfigurationError(f"k ({self.k}) cannot be larger than training set size ({n})")
    if self.batch_size <= 0:
      raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")

  def _compute_batch(self, query: str, cx1: int, start: int, end: int) -> list[DistanceRecord]:
    """
    Compute the distance from ``query`` to every reference in ``[start, end)``.

    Parameters
    ----------
    query : str
        Text to classify
    cx1 : int
        Compressed size of ``query``
    start, end : int
        Half-open index range into the reference corpus

    Returns
    -------
    list[DistanceRecord]
        One record per index in the range
    """
    records = [
      DistanceRecord(idx, ncd(query, self.training_data_[idx], cx1=cx1))
      for idx in range(start, end)
    ]
    logger.debug(f"Batch [{start}, {end}) computed {len(records)} distances")
    return records

  def _dispatch(self, query: str) -> list[DistanceRecord]:
    """
    Compute distances to the whole reference corpus on the worker pool.

    Each batch returns its own list of records; the lists are merged only
    after every batch has finished.

    Parameters
    ----------
    query : str
        Text to classify

    Returns
    -------
    list[DistanceRecord]
        Exactly one record per reference index, in no particular order
    """
    n = len(self.training_data_)
    batches = partition_batches(n, self.batch_size)
    cx1 = compressed_size(query)

    logger.debug(f"Dispatching {len(batches)} batches of up to {self.batch_size} "
                 f"samples, C(query)={cx1}")

    executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                  thread_name_prefix='ncd-batch')
    try:
      futures = {
        executor.submit(self._compute_batch, query, cx1, start, end): (start, end)
        for start, end in batches
      }
      done, not_done = wait(futures, timeout=self.timeout, return_when=FIRST_EXCEPTION)

      records = []
      for future, batch in futures.items():
        if future not in done:
          continue
        error = future.exception()
        if error is not None:
          raise DispatchError(f"Batch [{batch[0]}, {batch[1]}) failed: {error}",
                              batch=batch) from error
        records.extend(future.result())

      if not_done:
        raise DispatchError(
          f"{len(not_done)} of {len(batches)} batches did not finish "
          f"within {self.timeout}s",
          batch=futures[next(iter(not_done))],
          timed_out=True,
        )
    finally:
      executor.shutdown(wait=False, cancel_futures=True)

    if len(records) != n or len({r.index for r in records}) != n:
      raise DispatchError(f"Expected {n} distances, got {len(records)}",
                          details={'expected': n, 'received': len(records)})

    return records

  def _vote(self, records: list[DistanceRecord]) -> Prediction:
    """
    Select the k nearest records and vote on their labels.

    Records are ordered by distance, then by reference index. When labels tie
    on count, the label of the nearest neighbor among them wins.
    """
    distances = np.array([r.ncd for r in records], dtype=np.float64)
    indices = np.array([r.index for r in records], dtype=np.int64)
    order = np.lexsort((indices, distances))[:self.k]

    k_nearest = tuple(records[i] for i in order)
    k_nearest_labels = [self.training_labels_[r.index] for r in k_nearest]
    label_counts = Counter(k_nearest_labels)
    top_count = max(label_counts.values())
    predicted_label = next(
      label for label in k_nearest_labels if label_counts[label] == top_count
    )

    logger.debug(f"K nearest neighbors: indices={[r.index for r in k_nearest]}, "
                 f"labels={k_nearest_labels}, "
                 f"distances={[round(r.ncd, 4) for r in k_nearest]}")
    logger.debug(f"Voting result: {dict(label_counts)}")

    return Prediction(
      label=predicted_label,
      label_name=lookup_label_name(predicted_label, self.label_names),
      votes=dict(label_counts),
      neighbors=k_nearest,
    )

  def fit(self, X: Sequence[str], y: Sequence[Any]) -> 'NCDKNNClassifier':
    """
    Fit the classifier with training data.

    Parameters
    ----------
    X : Sequence[str]
        Reference texts
    y : Sequence
        Reference labels

    Returns
    -------
    self : NCDKNNClassifier
        Returns self for method chaining
    """
    if len(X) != len(y):
      raise ValueError("X and y must have the same length")

    if len(X) == 0:
      raise ConfigurationError("Training data cannot be empty")

    if self.k > len(X):
      raise ConfigurationError(f"k ({self.k}) cannot be larger than training set size ({len(X)})")

    for i, text in enumerate(X):
      if not isinstance(text, str):
        raise ValueError(f"Invalid sample at index {i}: expected str, got {type(text).__name__}")

    self.training_data_ = tuple(X)
    self.training_labels_ = tuple(y)
    self.is_fitted_ = True

    info = get_corpus_info(self.training_data_, self.training_labels_)
    logger.debug(f"Fitted classifier with {info['num_samples']} training samples, "
                 f"{info['num_classes']} unique classes")

    return self

  def fit_samples(self, samples: Sequence[LabeledSample]) -> 'NCDKNNClassifier':
    """Fit the classifier from labeled samples."""
    return self.fit([s.text for s in samples], [s.label for s in samples])

  def explain(self, x: str) -> Prediction:
    """
    Predict the class of a single text, with the votes and neighbors used.

    Parameters
    ----------
    x : str
        Text to classify

    Returns
    -------
    Prediction
        Predicted label and its justification
    """
    self._check_ready()
    self._validate_text(x)

    return self._vote(self._dispatch(x))

  def predict_single(self, x: str) -> Any:
    """
    Predict the class of a single text.

    Parameters
    ----------
    x : str
        Text to classify

    Returns
    -------
    Any
        Predicted class label
    """
    return self.explain(x).label

  def predict_named(self, x: str) -> tuple[Any, str]:
    """Predict the class of a single text as ``(label, label_name)``."""
    prediction = self.explain(x)
    return prediction.label, prediction.label_name

  def predict(self, X: Sequence[str]) -> list[Any]:
    """
    Predict classes for multiple texts.

    Parameters
    ----------
    X : Sequence[str]
        Texts to classify

    Returns
    -------
    list[Any]
        Predicted class labels
    """
    if not self.is_fitted_:
      raise ValueError("Classifier must be fitted before prediction")

    if len(X) == 0:
      return []

    predictions = []
    for i, text in enumerate(X):
      try:
        pred = self.predict_single(text)
      except Exception as e:
        logger.error(f"Failed to predict for sample {i}: {e}")
        raise
      predictions.append(pred)
      logger.debug(f"Predicted '{pred}' for test sample {i}")

    return predictions

  def get_params(self) -> dict:
    """Get classifier parameters."""
    return {
      'k': self.k,
      'batch_size': self.batch_size,
      'max_workers': self.max_workers,
      'timeout': self.timeout,
      'label_names': self.label_names,
    }

  def set_params(self, **params) -> 'NCDKNNClassifier':
    """Set classifier parameters."""
    valid = self.get_params()
    for key, value in params.items():
      if key in valid:
        setattr(self, key, value)
      else:
        raise ValueError(f"Invalid parameter: {key}")
    return self


def predict(
    query: str,
    corpus: Sequence[LabeledSample],
    k: int = 10,
    batch_size: int = 10000,
    max_workers: Optional[int] = None,
) -> Any:
  """
  Classify ``query`` against ``corpus`` in one call.

  Parameters
  ----------
  query : str
      Text to classify
  corpus : Sequence[LabeledSample]
      Reference samples
  k : int, default=10
      Number of voting neighbors
  batch_size : int, default=10000
      Reference samples per worker task
  max_workers : int, optional
      Size of the worker pool

  Returns
  -------
  Any
      Predicted class label
  """
  classifier = NCDKNNClassifier(k=k, batch_size=batch_size, max_workers=max_workers)
  return classifier.fit_samples(corpus).predict_single(query)
