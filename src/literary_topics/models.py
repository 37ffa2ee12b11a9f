"""Data models for the Literary Topics project.

This module contains dataclasses representing the core domain objects.
Derived objects are value objects: they are rebuilt from scratch on every
load and never point back into the raw rows they were computed from.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from literary_topics.config import TOPIC_COUNT

# A topic distribution maps "Topic_<n>" to a non-negative weight
TopicDistribution = dict[str, float]


def topic_key(number: int) -> str:
    """Key used for a topic in derived structures, e.g. "Topic_3"."""
    return f"Topic_{number}"


def topic_label(number: int) -> str:
    """Key used for a topic in the label table, e.g. "Topic 3"."""
    return f"Topic {number}"


TOPIC_KEYS = [topic_key(i) for i in range(1, TOPIC_COUNT + 1)]


def empty_distribution() -> TopicDistribution:
    return {key: 0.0 for key in TOPIC_KEYS}


def _freeze_distribution(obj: Any) -> None:
    # Aggregates hold a read-only copy of their distribution
    frozen = MappingProxyType(dict(obj.mean_distribution))
    object.__setattr__(obj, "mean_distribution", frozen)


def parse_topic_number(value: Any) -> int | None:
    """Extract a topic number from a cell that identifies a topic.

    Accepts integers as well as strings ending in digits. Strings that do not
    end in digits fall back to their leading integer, if any. A string that is
    a bare signed integer is read with its sign, like an int value, so "-3"
    and -3 are both rejected.

    Returns:
        The topic number, or None if no positive number could be found

    Examples:
        >>> parse_topic_number("Topic_7")
        7
        >>> parse_topic_number(3)
        3
        >>> parse_topic_number("12 (misc)")
        12
        >>> parse_topic_number("Topic") is None
        True
        >>> parse_topic_number("-3") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        number = int(value)
    else:
        text = str(value).strip()
        if re.fullmatch(r"[+-]?\d+", text):
            number = int(text)
        elif match := re.search(r"\d+$", text):
            number = int(match.group())
        elif match := re.match(r"[+-]?\d+", text):
            number = int(match.group())
        else:
            return None

    return number if number > 0 else None


@dataclass(frozen=True)
class DocumentRecord:
    """One literary work with its topic weights.

    Attributes:
        author: Author name as found in the source, or None
        year: Publication year, or None if missing
        title: Book title, or None if missing
        dominant_topic: Dominant topic as reported by the model (e.g. "Topic_3")
        topic_weights: One raw weight per topic, None where the cell was empty
    """
    author: str | None
    year: int | None
    title: str | None
    dominant_topic: str | None
    topic_weights: tuple[float | None, ...]

    def raw_total(self) -> float:
        """Sum of the present topic weights."""
        return sum(w for w in self.topic_weights if w is not None)


@dataclass(frozen=True)
class TopicLabel:
    """Human readable name of a topic.

    Attributes:
        number: Topic number as written in the label table (e.g. "Topic 3")
        name: The topic name (e.g. "Domestic Life")
    """
    number: str
    name: str


@dataclass(frozen=True)
class ExpandedWord:
    """An additional keyword for a topic from the expanded wordlist."""
    topic_id: int
    word: str


@dataclass
class RawTables:
    """The four tables exported by the topic model, as parsed from CSV.

    Attributes:
        topic_labels: Rows with "Topic Number" and "Topic Name" fields
        nmf_topics: Ranked keywords per topic, row 0 is a header
        document_topics: One row per document with metadata and topic weights
        wordlist: Expanded keywords, column 0 identifies the topic
    """
    topic_labels: list[dict[str, Any]] = field(default_factory=list)
    nmf_topics: list[list[str]] = field(default_factory=list)
    document_topics: list[dict[str, Any]] = field(default_factory=list)
    wordlist: list[list[str]] = field(default_factory=list)


@dataclass(frozen=True)
class YearAggregate:
    """Mean topic distribution over all documents published in a year."""
    year: int
    document_count: int
    mean_distribution: Mapping[str, float]

    def __post_init__(self):
        _freeze_distribution(self)


@dataclass(frozen=True)
class AuthorAggregate:
    """Mean topic distribution over all documents by one author.

    Attributes:
        name: The trimmed author name
        document_count: Number of documents by the author
        distinct_book_count: Number of unique titles, may be below document_count
        mean_distribution: Average topic distribution of the author's documents
    """
    name: str
    document_count: int
    distinct_book_count: int
    mean_distribution: Mapping[str, float]

    def __post_init__(self):
        _freeze_distribution(self)


@dataclass(frozen=True)
class DecadeAggregate:
    """Document-weighted topic distribution over a decade.

    Attributes:
        decade: First year of the decade (e.g. 1950)
        total_books: Number of documents in the decade
        mean_distribution: Average topic distribution of the decade
        dominant_topic: Topic with the highest mean (e.g. "Topic_4")
    """
    decade: int
    total_books: int
    mean_distribution: Mapping[str, float]
    dominant_topic: str

    def __post_init__(self):
        _freeze_distribution(self)

    def top_topics(self, k: int = 3) -> list[tuple[str, float]]:
        """Return the k strongest topics, strongest first."""
        ranked = sorted(
            self.mean_distribution.items(), key=lambda item: item[1], reverse=True
        )
        return ranked[:k]


@dataclass(frozen=True)
class TopicKeywords:
    """Named topic with its keywords in rank order, without duplicates."""
    id: int
    name: str
    keywords: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "keywords", tuple(self.keywords))


@dataclass(frozen=True)
class TopicLink:
    """Edge in the topic network.

    Attributes:
        source: Topic number of the first topic (lower id)
        target: Topic number of the second topic
        value: Pearson correlation between the two topics
    """
    source: int
    target: int
    value: float


@dataclass(frozen=True)
class TopicPrevalence:
    """Overall presence of a topic in the corpus.

    Attributes:
        id: The topic number
        name: The topic name
        mean_weight: Average weight of the topic over all documents
        dominant_count: Number of documents where this is the dominant topic
    """
    id: int
    name: str
    mean_weight: float
    dominant_count: int
