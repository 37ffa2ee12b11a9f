"""Data quality diagnostics for a loaded dataset.

The aggregators in transform.py are pure; whatever we want to know about the
shape of the data while running them is reported from here instead.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from literary_topics.config import NORMALIZATION_SAMPLE_SIZE, NORMALIZATION_THRESHOLD
from literary_topics.models import AuthorAggregate, DocumentRecord
from literary_topics.transform import sample_mean_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizationReport:
    """Why a dataset was or was not normalized.

    Attributes:
        sample_size: Number of leading documents inspected
        sample_mean_total: Mean raw topic total of the sample
        threshold: Mean total below which normalization applies
        needs_normalization: The resulting decision
    """
    sample_size: int
    sample_mean_total: float
    threshold: float
    needs_normalization: bool


def normalization_report(
    docs: Sequence[DocumentRecord],
    needs_normalization: bool,
    sample_size: int = NORMALIZATION_SAMPLE_SIZE,
) -> NormalizationReport:
    report = NormalizationReport(
        sample_size=min(sample_size, len(docs)),
        sample_mean_total=sample_mean_total(docs, sample_size),
        threshold=NORMALIZATION_THRESHOLD,
        needs_normalization=needs_normalization,
    )
    logger.info(
        f"Average topic total across {report.sample_size} sampled documents: "
        f"{report.sample_mean_total * 100:.2f}%"
    )
    logger.info(f"Normalization needed: {report.needs_normalization}")
    return report


def log_document_sample(docs: Sequence[DocumentRecord], sample_size: int = 20) -> None:
    """Log the raw topic total of the first documents."""
    sample = docs[:sample_size]
    logger.debug(f"Diagnosing topic distributions for {len(sample)} documents")

    for index, doc in enumerate(sample):
        logger.debug(
            f"Document {index}: '{doc.title or 'Untitled'}' by {doc.author or 'Unknown'}, "
            f"total topic distribution {doc.raw_total() * 100:.2f}%"
        )


def author_distribution_totals(authors: Sequence[AuthorAggregate]) -> dict[str, float]:
    """Sum each author's mean distribution, which should be close to 1."""
    totals = {
        author.name: sum(author.mean_distribution.values()) for author in authors
    }
    for name, total in totals.items():
        logger.info(f"Author {name}: total topic distribution {total * 100:.2f}%")
    return totals
