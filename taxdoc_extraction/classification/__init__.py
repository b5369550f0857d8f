from .classifier import DocumentClassifier

__all__ = ["DocumentClassifier"]
