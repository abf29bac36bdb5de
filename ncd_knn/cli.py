"""Command-line interface for the NCD KNN text classifier."""

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from . import __version__
from .classifier import NCDKNNClassifier
from .config import ClassifierConfig
from .data import load_corpus
from .errors import DispatchError, NCDKNNError
from .evaluation import evaluate
from .utils import get_corpus_info

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
  """Configure logging."""
  level = logging.DEBUG if verbose else logging.INFO
  logging.basicConfig(
    level=level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
  )


def _exit_without_joining(code: int):
  """Exit now; stalled worker threads would otherwise be joined at interpreter exit."""
  sys.stdout.flush()
  sys.stderr.flush()
  logging.shutdown()
  os._exit(code)


def build_parser() -> argparse.ArgumentParser:
  defaults = ClassifierConfig()
  parser = argparse.ArgumentParser(
    prog="ncd-knn",
    description="Classify short texts with gzip Normalized Compression Distance and k-NN"
  )
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  parser.add_argument(
    "--train", dest="train_path", required=True,
    help="Training corpus CSV (label,title,body; no header)"
  )
  parser.add_argument(
    "--test", dest="test_path",
    help="Test corpus CSV; switches to evaluation mode"
  )
  parser.add_argument("--query", "-q", help="Text to classify in single-prediction mode")
  parser.add_argument(
    "-k", type=int, default=defaults.k,
    help=f"Number of nearest neighbors (default: {defaults.k})"
  )
  parser.add_argument(
    "--batch-size", type=int, default=defaults.batch_size,
    help=f"Reference samples per worker batch (default: {defaults.batch_size})"
  )
  parser.add_argument(
    "--workers", dest="max_workers", type=int,
    help="Worker threads (default: based on CPU count)"
  )
  parser.add_argument(
    "--timeout", type=float,
    help="Seconds allowed for one prediction; on timeout the process exits "
         "with status 1 without waiting for stalled workers"
  )
  parser.add_argument(
    "--train-limit", type=int, default=defaults.train_limit,
    help=f"Maximum training samples to load (default: {defaults.train_limit})"
  )
  parser.add_argument(
    "--num-test", dest="test_limit", type=int, default=defaults.test_limit,
    help=f"Number of test samples to evaluate (default: {defaults.test_limit})"
  )
  parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
  return parser


def run(config: ClassifierConfig) -> int:
  """Run single-prediction or evaluation mode; returns the exit status."""
  config.validate()

  train_set = load_corpus(config.train_path, limit=config.train_limit)
  info = get_corpus_info([s.text for s in train_set], [s.label for s in train_set])
  logger.info(f"Training samples: {info['num_samples']}, classes: {info['label_counts']}")
  logger.info(f"k: {config.k}, batch size: {config.batch_size}")

  classifier = NCDKNNClassifier.from_config(config).fit_samples(train_set)

  if config.evaluation_mode:
    test_set = load_corpus(config.test_path, limit=config.test_limit)
    result = evaluate(classifier, test_set)
    print(f"Accuracy: {result.accuracy:.4f} ({result.correct}/{result.total})")
    if result.total:
      print(result.report(config.label_names))
    return 0

  logger.info(f"Input text: {config.query}")
  label, name = classifier.predict_named(config.query)
  print(f"Predicted class: {name} (class idx {label})")
  return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
  """Main CLI entry point."""
  args = build_parser().parse_args(argv)
  setup_logging(args.verbose)

  config = ClassifierConfig(
    k=args.k,
    batch_size=args.batch_size,
    max_workers=args.max_workers,
    timeout=args.timeout,
    train_path=args.train_path,
    test_path=args.test_path,
    train_limit=args.train_limit,
    test_limit=args.test_limit,
    query=args.query,
  )

  try:
    return run(config)
  except DispatchError as e:
    logger.error(str(e))
    if e.timed_out:
      _exit_without_joining(1)
    return 1
  except NCDKNNError as e:
    logger.error(str(e))
    return 1


if __name__ == "__main__":
  sys.exit(main())
