"""
NCD KNN - k-nearest neighbors text classification using gzip compression.

This library implements the compression-based classification method from
"Low-Resource Text Classification: A Parameter-Free Classification Method with Compressors"
with the distance computation split into batches on a thread pool.
"""

__version__ = "0.1.0"

from .classifier import DistanceRecord, NCDKNNClassifier, Prediction, predict
from .config import ClassifierConfig
from .data import LabeledSample, load_corpus
from .errors import (
  CompressionError,
  ConfigurationError,
  CorpusLoadError,
  DispatchError,
  NCDKNNError,
)
from .utils import compressed_size, ncd

__all__ = [
  "NCDKNNClassifier",
  "ClassifierConfig",
  "DistanceRecord",
  "LabeledSample",
  "Prediction",
  "predict",
  "load_corpus",
  "compressed_size",
  "ncd",
  "NCDKNNError",
  "ConfigurationError",
  "CompressionError",
  "DispatchError",
  "CorpusLoadError",
]
