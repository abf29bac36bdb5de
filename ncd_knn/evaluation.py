"""
Accuracy evaluation over a labeled test corpus.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from sklearn.metrics import accuracy_score, classification_report

from .classifier import NCDKNNClassifier
from .config import lookup_label_name
from .data import LabeledSample

logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
  """True and predicted labels of an evaluation run."""

  y_true: list[Any] = field(default_factory=list)
  y_pred: list[Any] = field(default_factory=list)

  @property
  def total(self) -> int:
    return len(self.y_true)

  @property
  def correct(self) -> int:
    return sum(1 for t, p in zip(self.y_true, self.y_pred) if t == p)

  @property
  def accuracy(self) -> float:
    if not self.y_true:
      return 0.0
    return float(accuracy_score(self.y_true, self.y_pred))

  def report(self, label_names: Optional[Sequence[str]] = None) -> str:
    """Per-class precision and recall as a text table."""
    labels = sorted(set(self.y_true) | set(self.y_pred))
    target_names = None
    if label_names:
      target_names = [lookup_label_name(label, label_names) for label in labels]
    return classification_report(self.y_true, self.y_pred, labels=labels,
                                 target_names=target_names, zero_division=0)


def evaluate(
    classifier: NCDKNNClassifier,
    samples: Sequence[LabeledSample],
    limit: Optional[int] = None,
) -> EvaluationResult:
  """
  Predict every test sample and track running accuracy.

  Parameters
  ----------
  classifier : NCDKNNClassifier
      A fitted classifier
  samples : Sequence[LabeledSample]
      Labeled test samples
  limit : int, optional
      Evaluate at most this many samples

  Returns
  -------
  EvaluationResult
      True and predicted labels for every evaluated sample
  """
  if limit is not None:
    samples = samples[:limit]

  result = EvaluationResult()
  correct = 0
  for i, sample in enumerate(samples, 1):
    pred = classifier.predict_single(sample.text)
    result.y_true.append(sample.label)
    result.y_pred.append(pred)
    if pred == sample.label:
      correct += 1
    logger.info(f"[{i}/{len(samples)}] true={sample.label} predicted={pred} "
                f"accuracy={correct / i:.4f}")

  return result
