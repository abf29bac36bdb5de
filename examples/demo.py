#!/usr/bin/env python3
"""
Demo script for the NCD KNN text classifier.

This script builds a small in-memory news corpus with four topics and
demonstrates k-NN classification using gzip Normalized Compression Distance.
"""

from sklearn.metrics import accuracy_score, classification_report

from ncd_knn import ClassifierConfig, LabeledSample, NCDKNNClassifier

# Label ids follow AG News: 1 World, 2 Sports, 3 Business, 4 Sci/Tech.
TRAIN = [
    (1, "Leaders meet in Geneva to discuss the ceasefire agreement"),
    (1, "Parliament votes on new election law after weeks of protests"),
    (1, "United Nations sends aid to flood victims in the region"),
    (2, "Striker scores twice as the home team wins the league match"),
    (2, "Coach fired after losing streak despite strong start to season"),
    (2, "Tennis champion advances to the final after a five set match"),
    (3, "Stocks rally as investors cheer strong quarterly earnings"),
    (3, "Central bank raises interest rates to curb inflation"),
    (3, "Retailer shares fall after weak holiday sales forecast"),
    (4, "New smartphone chip promises faster processing and longer battery"),
    (4, "Space agency launches probe to study the moon surface"),
    (4, "Researchers release open source software for protein folding"),
]

TEST = [
    (1, "Protests continue as parliament debates the election reform"),
    (2, "Home team wins the final match after the striker scores late"),
    (3, "Investors sell shares as interest rates rise again"),
    (4, "Probe launched by space agency reaches the moon"),
]


def main():
    """Run the demo."""
    print("NCD KNN Classifier Demo")
    print("=" * 40)

    config = ClassifierConfig(k=3, batch_size=4)
    train = [LabeledSample(label, text) for label, text in TRAIN]

    print(f"Training set: {len(train)} samples")
    print(f"Test set: {len(TEST)} samples")
    print()

    classifier = NCDKNNClassifier.from_config(config).fit_samples(train)

    y_test = [label for label, _ in TEST]
    y_pred = []
    for label, text in TEST:
        prediction = classifier.explain(text)
        y_pred.append(prediction.label)
        status = "✓" if prediction.label == label else "✗"
        print(f"{text!r}: True={config.label_name(label)}, "
              f"Predicted={prediction.label_name} votes={prediction.votes} {status}")

    print()
    print(f"Accuracy: {accuracy_score(y_test, y_pred):.2%}")
    print()
    print("Classification Report:")
    print(classification_report(y_test, y_pred, zero_division=0))

    print("Classifier Parameters:")
    for key, value in classifier.get_params().items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
