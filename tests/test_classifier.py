"""
Tests for the NCD KNN Classifier.
"""

import time
import zlib
from unittest.mock import patch

import pytest

from ncd_knn import LabeledSample, NCDKNNClassifier, predict
from ncd_knn.classifier import DistanceRecord
from ncd_knn.errors import CompressionError, ConfigurationError, DispatchError
from ncd_knn.utils import (
  compressed_size,
  get_corpus_info,
  ncd,
  normalized_compression_distance,
  partition_batches,
)


class TestNCDKNNClassifier:
  """Test cases for the main classifier."""

  @pytest.fixture
  def sample_corpus(self):
    """Create a small two-class corpus."""
    texts = [
      "the cat sat on the mat",
      "a cat chased the mouse",
      "kittens and cats like to sleep",
      "stock market rallies as shares climb",
      "quarterly finance report shows profit",
      "investors sold shares after the earnings report",
      "the dog barked at the cat",
    ]
    labels = [1, 1, 1, 2, 2, 2, 1]
    return texts, labels

  def test_init(self):
    """Test classifier initialization."""
    classifier = NCDKNNClassifier(k=3)
    assert classifier.k == 3
    assert classifier.batch_size == 10000
    assert not classifier.is_fitted_

    classifier = NCDKNNClassifier(k=1, batch_size=2, max_workers=4, label_names=["A", "B"])
    assert classifier.max_workers == 4
    assert classifier.label_names == ("A", "B")

  def test_fit(self, sample_corpus):
    """Test fitting the classifier."""
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=1)

    result = classifier.fit(texts, labels)
    assert result is classifier
    assert classifier.is_fitted_
    assert classifier.training_data_ == tuple(texts)
    assert classifier.training_labels_ == tuple(labels)

  def test_fit_samples(self):
    samples = [LabeledSample(1, "cat"), LabeledSample(2, "stock market")]
    classifier = NCDKNNClassifier(k=1).fit_samples(samples)
    assert classifier.training_data_ == ("cat", "stock market")
    assert classifier.training_labels_ == (1, 2)

  def test_fit_validation(self, sample_corpus):
    """Test input validation in fit method."""
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=1)

    with pytest.raises(ValueError, match="X and y must have the same length"):
      classifier.fit(texts, labels[:-1])

    with pytest.raises(ConfigurationError, match="Training data cannot be empty"):
      classifier.fit([], [])

    with pytest.raises(ConfigurationError, match="k.*cannot be larger than training set size"):
      NCDKNNClassifier(k=10).fit(texts, labels)

    with pytest.raises(ValueError, match="Invalid sample"):
      classifier.fit([None], [1])

  def test_predict_not_fitted(self):
    classifier = NCDKNNClassifier(k=1)

    with pytest.raises(ValueError, match="Classifier must be fitted"):
      classifier.predict_single("cat")

    with pytest.raises(ValueError, match="Classifier must be fitted"):
      classifier.predict(["cat"])

  def test_end_to_end_scenario(self):
    corpus = [
      LabeledSample(1, "cat"),
      LabeledSample(1, "cats"),
      LabeledSample(2, "finance report"),
      LabeledSample(2, "stock market"),
    ]
    classifier = NCDKNNClassifier(k=2).fit_samples(corpus)

    prediction = classifier.explain("kitten")
    assert prediction.label == 1
    assert {r.index for r in prediction.neighbors} == {0, 1}
    assert prediction.votes == {1: 2}

    assert predict("kitten", corpus, k=2, batch_size=1) == 1

  def test_k_one_returns_nearest_label(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=1).fit(texts, labels)

    prediction = classifier.explain(texts[3])
    assert prediction.neighbors[0].index == 3
    assert prediction.label == labels[3]

  def test_k_equals_n_returns_global_majority(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=len(texts)).fit(texts, labels)

    for query in ["stock prices", "finance report", "kitten"]:
      assert classifier.predict_single(query) == 1

  def test_batch_size_invariance(self, sample_corpus):
    texts, labels = sample_corpus
    query = "shares of the cat food maker fell"
    expected = NCDKNNClassifier(k=3, batch_size=len(texts)).fit(texts, labels).explain(query)

    for batch_size in range(1, len(texts) + 1):
      classifier = NCDKNNClassifier(k=3, batch_size=batch_size, max_workers=3)
      prediction = classifier.fit(texts, labels).explain(query)
      assert prediction.label == expected.label
      assert prediction.neighbors == expected.neighbors

  def test_partition_completeness(self, sample_corpus):
    texts, labels = sample_corpus
    for batch_size in range(1, len(texts) + 1):
      classifier = NCDKNNClassifier(k=1, batch_size=batch_size).fit(texts, labels)
      records = classifier._dispatch("kitten")
      assert sorted(r.index for r in records) == list(range(len(texts)))

  def test_determinism(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=4, batch_size=2).fit(texts, labels)

    first = classifier.explain("the market report on cats")
    for _ in range(5):
      assert classifier.explain("the market report on cats") == first

  def test_predict_multiple(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=1).fit(texts[:6], labels[:6])

    predictions = classifier.predict(texts[6:] + ["shares"])
    assert len(predictions) == 2
    assert all(pred in [1, 2] for pred in predictions)

    assert classifier.predict([]) == []

  def test_predict_named(self):
    classifier = NCDKNNClassifier(k=1, label_names=["World", "Sports"])
    classifier.fit(["football match ends in a draw"], [2])
    assert classifier.predict_named("football") == (2, "Sports")

  def test_configuration_errors(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=1).fit(texts, labels)

    classifier.set_params(k=0)
    with pytest.raises(ConfigurationError, match="k must be positive"):
      classifier.predict_single("cat")

    classifier.set_params(k=len(texts) + 1)
    with pytest.raises(ConfigurationError, match="cannot be larger"):
      classifier.predict_single("cat")

    classifier.set_params(k=1, batch_size=0)
    with pytest.raises(ConfigurationError, match="batch_size"):
      classifier.predict_single("cat")

    classifier.set_params(batch_size=10)
    with pytest.raises(ConfigurationError, match="must not be empty"):
      classifier.predict_single("")

    with pytest.raises(TypeError, match="Input must be a string"):
      classifier.predict_single(42)

  def test_configuration_error_dispatches_nothing(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=0).fit(texts, labels)

    with patch.object(classifier, '_dispatch') as mock_dispatch:
      with pytest.raises(ConfigurationError):
        classifier.predict_single("cat")
    mock_dispatch.assert_not_called()

  def test_compression_failure_aborts_prediction(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=1, batch_size=2).fit(texts, labels)

    def failing_size(data):
      if "stock" in data:
        raise CompressionError("boom")
      return compressed_size(data)

    with patch('ncd_knn.utils.compressed_size', side_effect=failing_size):
      with pytest.raises(DispatchError, match="Batch \\[2, 4\\) failed") as excinfo:
        classifier.predict_single("kitten")

    assert isinstance(excinfo.value.__cause__, CompressionError)
    assert excinfo.value.batch == (2, 4)

  def test_timeout(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=1, batch_size=len(texts), timeout=0.05).fit(texts, labels)

    def slow_ncd(x1, x2, cx1=None):
      time.sleep(0.5)
      return 0.5

    with patch('ncd_knn.classifier.ncd', side_effect=slow_ncd):
      with pytest.raises(DispatchError, match="did not finish") as excinfo:
        classifier.predict_single("kitten")

    assert excinfo.value.timed_out
    assert excinfo.value.details['timed_out'] is True

  def test_incomplete_distances_abort_prediction(self, sample_corpus):
    texts, labels = sample_corpus
    classifier = NCDKNNClassifier(k=1, batch_size=3).fit(texts, labels)
    compute_batch = classifier._compute_batch

    def dropping_batch(query, cx1, start, end):
      return compute_batch(query, cx1, start, end)[1:]

    with patch.object(classifier, '_compute_batch', side_effect=dropping_batch):
      with pytest.raises(DispatchError, match="Expected 7 distances, got 4") as excinfo:
        classifier.predict_single("kitten")
    assert not excinfo.value.timed_out

    def duplicating_batch(query, cx1, start, end):
      records = compute_batch(query, cx1, start, end)
      return records + records[:1]

    with patch.object(classifier, '_compute_batch', side_effect=duplicating_batch):
      with pytest.raises(DispatchError, match="Expected 7 distances, got 10"):
        classifier.predict_single("kitten")

  def test_vote_tie_break_prefers_nearest_neighbor(self):
    classifier = NCDKNNClassifier(k=4).fit(["a", "b", "c", "d"], [1, 2, 1, 2])
    records = [
      DistanceRecord(0, 0.2),
      DistanceRecord(1, 0.1),
      DistanceRecord(2, 0.3),
      DistanceRecord(3, 0.4),
    ]

    prediction = classifier._vote(records)
    assert prediction.votes == {1: 2, 2: 2}
    assert prediction.label == 2

  def test_vote_equal_distances_ordered_by_index(self):
    classifier = NCDKNNClassifier(k=2).fit(["a", "b", "c"], [2, 1, 1])
    records = [DistanceRecord(2, 0.5), DistanceRecord(1, 0.5), DistanceRecord(0, 0.5)]

    prediction = classifier._vote(records)
    assert [r.index for r in prediction.neighbors] == [0, 1]
    assert prediction.label == 2

  def test_get_set_params(self):
    """Test parameter getting and setting."""
    classifier = NCDKNNClassifier(k=1, batch_size=5)

    params = classifier.get_params()
    assert params['k'] == 1
    assert params['batch_size'] == 5

    classifier.set_params(k=3, max_workers=2)
    assert classifier.k == 3
    assert classifier.max_workers == 2

    with pytest.raises(ValueError, match="Invalid parameter"):
      classifier.set_params(invalid_param=123)


class TestUtils:
  """Test utility functions."""

  @pytest.fixture
  def texts(self):
    return [
      "Japan bonds decline on rate bets as Hong Kong stocks gain",
      "Bucks fire coach after 43 games despite a top record",
      "Private lander destroyed during reentry after failed moon mission",
      "cat",
    ]

  def test_compressed_size(self):
    assert compressed_size("hello") == compressed_size(b"hello")
    assert compressed_size("a" * 1000) < compressed_size("".join(chr(97 + i % 26) * (i % 7) for i in range(300)))
    assert compressed_size("") > 0

  def test_compressed_size_failure(self):
    with patch('ncd_knn.utils.gzip.compress', side_effect=zlib.error("bad state")):
      with pytest.raises(CompressionError, match="Failed to compress"):
        compressed_size("hello")

  def test_ncd_formula(self):
    assert normalized_compression_distance(100, 120, 150) == pytest.approx(50 / 120)
    assert normalized_compression_distance(120, 100, 150) == pytest.approx(50 / 120)

    with pytest.raises(ValueError, match="undefined"):
      normalized_compression_distance(0, 0, 0)

  def test_ncd_non_negative(self, texts):
    for a in texts:
      for b in texts:
        assert ncd(a, b) >= -1e-9

  def test_ncd_self_distance_is_minimal(self, texts):
    query = texts[0]
    self_distance = ncd(query, query)
    assert self_distance < 0.2
    assert all(self_distance < ncd(query, other) for other in texts[1:])

  def test_ncd_precomputed_query_size(self, texts):
    cx1 = compressed_size(texts[0])
    assert ncd(texts[0], texts[1], cx1=cx1) == ncd(texts[0], texts[1])

  def test_partition_batches(self):
    assert partition_batches(10, 3) == [(0, 3), (3, 6), (6, 9), (9, 10)]
    assert partition_batches(10, 10) == [(0, 10)]
    assert partition_batches(10, 100) == [(0, 10)]
    assert partition_batches(0, 5) == []

    for n in range(1, 12):
      for batch_size in range(1, n + 1):
        batches = partition_batches(n, batch_size)
        assert len(batches) == -(-n // batch_size)
        covered = [i for start, end in batches for i in range(start, end)]
        assert covered == list(range(n))

    with pytest.raises(ValueError, match="batch_size must be positive"):
      partition_batches(10, 0)

  def test_get_corpus_info(self):
    info = get_corpus_info(["ab", "abcd", "abcdef"], [2, 1, 2])
    assert info['num_samples'] == 3
    assert info['num_classes'] == 2
    assert info['label_counts'] == {1: 1, 2: 2}
    assert info['mean_text_length'] == pytest.approx(4.0)
    assert info['max_text_length'] == 6

    assert get_corpus_info([], [])['num_samples'] == 0


class TestErrors:
  """Test exception types."""

  def test_details_are_copied(self):
    details = {'expected': 3}
    error = DispatchError("incomplete", batch=(0, 3), details=details)

    assert details == {'expected': 3}
    assert error.details == {'expected': 3, 'batch': (0, 3), 'timed_out': False}
