"""
Exception types raised by the feature pipeline.

Every error is fatal for a run: the pipeline either produces a fully
consistent pair of feature matrices or aborts before writing anything.
Each exception carries the stage name plus whatever context is needed
to diagnose a misconfigured threshold or a corrupt upstream dataset.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional


class FeaturePipelineError(Exception):
    """
    Base class for all feature pipeline failures.

    Parameters
    ----------
    message : str
        Human-readable description.
    stage : str
        Name of the pipeline stage that failed (e.g. "class_0", "test").
    """

    def __init__(self, message: str, stage: str = "unknown") -> None:
        self.stage = stage
        super().__init__(f"[{stage}] {message}")


class EmptyVocabularyError(FeaturePipelineError):
    """
    Raised when a document-frequency threshold excludes every term
    (or the document collection is empty).
    """

    def __init__(
        self,
        stage: str,
        threshold: float,
        n_documents: int,
    ) -> None:
        self.threshold = threshold
        self.n_documents = n_documents
        super().__init__(
            f"No terms reach a document-frequency ratio of {threshold} "
            f"across {n_documents} document(s).",
            stage=stage,
        )


class SchemaIntegrityError(FeaturePipelineError):
    """
    Raised when a merge, join or projection would change the row set,
    when document ids are duplicated or missing on one side, or when
    column schemas disagree.
    """

    def __init__(
        self,
        message: str,
        stage: str = "unknown",
        doc_ids: Optional[Iterable[Any]] = None,
    ) -> None:
        self.doc_ids: List[Any] = list(doc_ids) if doc_ids is not None else []
        if self.doc_ids:
            preview = self.doc_ids[:10]
            suffix = " ..." if len(self.doc_ids) > 10 else ""
            message = f"{message} Offending doc ids: {preview}{suffix}"
        super().__init__(message, stage=stage)


class AggregateFeatureMissingError(FeaturePipelineError):
    """
    Raised when an aggregate feature is absent for a document.

    Aggregate features are never zero-filled: zero is not interchangeable
    with "unknown" for these columns.
    """

    def __init__(
        self,
        feature: str,
        stage: str = "unknown",
        doc_id: Any = None,
    ) -> None:
        self.feature = feature
        self.doc_id = doc_id
        if doc_id is None:
            message = f"Aggregate feature column '{feature}' is missing."
        else:
            message = f"Aggregate feature '{feature}' is missing for doc id {doc_id!r}."
        super().__init__(message, stage=stage)
