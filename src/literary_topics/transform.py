from collections.abc import Iterable, Mapping, Sequence

from literary_topics.config import (
    LINK_THRESHOLD,
    NORMALIZATION_SAMPLE_SIZE,
    NORMALIZATION_THRESHOLD,
    TOPIC_COUNT,
)
from literary_topics.models import (
    TOPIC_KEYS,
    AuthorAggregate,
    DecadeAggregate,
    DocumentRecord,
    ExpandedWord,
    TopicDistribution,
    TopicKeywords,
    TopicLabel,
    TopicLink,
    TopicPrevalence,
    YearAggregate,
    empty_distribution,
    parse_topic_number,
    topic_label,
)
from literary_topics.statistics import pearson_correlation_matrix


def topic_name(labels: Sequence[TopicLabel], number: int) -> str:
    """Look up the name of a topic in the label table.

    Labels are matched on the exact string "Topic <n>". When no label matches,
    the synthetic name "Topic <n>" is used instead.

    Examples:
        >>> topic_name([TopicLabel("Topic 1", "Domestic Life")], 1)
        'Domestic Life'
        >>> topic_name([], 4)
        'Topic 4'
    """
    wanted = topic_label(number)
    for label in labels:
        if label.number == wanted:
            return label.name
    return wanted


def sample_mean_total(
    docs: Sequence[DocumentRecord],
    sample_size: int = NORMALIZATION_SAMPLE_SIZE,
) -> float:
    """Average raw topic total over the first documents of a dataset.

    Args:
        docs: All documents, in load order
        sample_size: Maximum number of leading documents to inspect

    Returns:
        Mean of the per-document sums of present topic weights, 0.0 when
        there are no documents
    """
    sample = docs[:sample_size]
    if not sample:
        return 0.0
    return sum(doc.raw_total() for doc in sample) / len(sample)


def needs_normalization(docs: Sequence[DocumentRecord]) -> bool:
    """Decide whether topic weights must be rescaled to sum to 1.

    The decision is taken once for a whole dataset from a sample of its first
    documents, and must be passed to every aggregator of that dataset.

    Returns:
        True if the sample's mean topic total is strictly below the threshold.
        An empty dataset never needs normalization.

    Examples:
        >>> doc = DocumentRecord("A", 1950, None, None, (0.3, 0.3))
        >>> needs_normalization([doc])
        True
    """
    if not docs:
        return False
    return sample_mean_total(docs) < NORMALIZATION_THRESHOLD


def normalize(doc: DocumentRecord, needs_normalization: bool) -> TopicDistribution:
    """Turn a document's raw topic weights into a distribution.

    Missing weights count as 0. When normalization is needed every weight is
    divided by the document's own total, except for documents whose total is
    0, which stay all zero.
    """
    weights = [w if w is not None else 0.0 for w in doc.topic_weights]
    weights += [0.0] * (TOPIC_COUNT - len(weights))

    total = doc.raw_total()
    if needs_normalization and total > 0:
        weights = [w / total for w in weights]

    return {key: weight for key, weight in zip(TOPIC_KEYS, weights)}


def _add_into(sums: TopicDistribution, distribution: TopicDistribution) -> None:
    for key, value in distribution.items():
        sums[key] += value


def _divide(sums: TopicDistribution, count: int) -> TopicDistribution:
    if count <= 0:
        return empty_distribution()
    return {key: value / count for key, value in sums.items()}


def aggregate_by_year(
    docs: Iterable[DocumentRecord],
    needs_normalization: bool,
) -> dict[int, YearAggregate]:
    """Compute the mean topic distribution of each publication year.

    Documents without a year are skipped. Every other document counts towards
    its year, even when all its topic weights are missing.

    Args:
        docs: All documents of the dataset
        needs_normalization: The dataset-wide normalization decision

    Returns:
        Mapping of year to YearAggregate, for every year with a document

    Examples:
        >>> docs = [
        ...     DocumentRecord("A", 1950, None, None, (0.6, 0.4)),
        ...     DocumentRecord("A", 1950, None, None, (0.3, 0.3)),
        ... ]
        >>> round(aggregate_by_year(docs, False)[1950].mean_distribution["Topic_1"], 2)
        0.45
    """
    counts: dict[int, int] = {}
    sums: dict[int, TopicDistribution] = {}

    for doc in docs:
        if not doc.year:
            continue

        if doc.year not in counts:
            counts[doc.year] = 0
            sums[doc.year] = empty_distribution()

        counts[doc.year] += 1
        _add_into(sums[doc.year], normalize(doc, needs_normalization))

    return {
        year: YearAggregate(
            year=year,
            document_count=counts[year],
            mean_distribution=_divide(sums[year], counts[year]),
        )
        for year in counts
    }


def topic_evolution(year_aggregates: Mapping[int, YearAggregate]) -> list[YearAggregate]:
    """Order yearly aggregates chronologically, as a time series."""
    return [year_aggregates[year] for year in sorted(year_aggregates)]


def top_authors(
    docs: Iterable[DocumentRecord],
    n: int,
    needs_normalization: bool,
) -> list[AuthorAggregate]:
    """Find the authors with the most documents.

    Authors are identified by their trimmed name; documents with a missing or
    blank author are skipped. Authors with equal document counts keep the
    order in which they were first encountered.

    Args:
        docs: All documents of the dataset
        n: Maximum number of authors to return
        needs_normalization: The dataset-wide normalization decision

    Returns:
        Up to n AuthorAggregate objects, by document count descending
    """
    counts: dict[str, int] = {}
    books: dict[str, set[str]] = {}
    sums: dict[str, TopicDistribution] = {}

    for doc in docs:
        name = (doc.author or "").strip()
        if not name:
            continue

        if name not in counts:
            counts[name] = 0
            books[name] = set()
            sums[name] = empty_distribution()

        counts[name] += 1
        if doc.title:
            books[name].add(doc.title)
        _add_into(sums[name], normalize(doc, needs_normalization))

    authors = [
        AuthorAggregate(
            name=name,
            document_count=counts[name],
            distinct_book_count=len(books[name]),
            mean_distribution=_divide(sums[name], counts[name]),
        )
        for name in counts
    ]

    # sorted() is stable, so ties keep encounter order
    authors = sorted(authors, key=lambda a: a.document_count, reverse=True)
    return authors[:max(n, 0)]


def dominant_topic(distribution: TopicDistribution) -> str:
    """Return the topic with the highest weight, lowest id on ties."""
    best_key = TOPIC_KEYS[0]
    best_value = float("-inf")
    for key in TOPIC_KEYS:
        value = distribution.get(key, 0.0)
        if value > best_value:
            best_key = key
            best_value = value
    return best_key


def aggregate_by_decade(year_aggregates: Mapping[int, YearAggregate]) -> list[DecadeAggregate]:
    """Combine yearly aggregates into decades.

    Each year contributes its mean distribution weighted by its document
    count, so the decade mean equals the mean over all the decade's documents.

    Returns:
        List of DecadeAggregate objects ordered by decade

    Examples:
        >>> years = {
        ...     1951: YearAggregate(1951, 1, {"Topic_1": 1.0}),
        ...     1958: YearAggregate(1958, 3, {"Topic_2": 1.0}),
        ... }
        >>> decade = aggregate_by_decade(years)[0]
        >>> decade.decade, decade.total_books, decade.dominant_topic
        (1950, 4, 'Topic_2')
    """
    totals: dict[int, int] = {}
    sums: dict[int, TopicDistribution] = {}

    for aggregate in year_aggregates.values():
        decade = (aggregate.year // 10) * 10

        if decade not in totals:
            totals[decade] = 0
            sums[decade] = empty_distribution()

        totals[decade] += aggregate.document_count
        for key in TOPIC_KEYS:
            sums[decade][key] += (
                aggregate.mean_distribution.get(key, 0.0) * aggregate.document_count
            )

    results = []
    for decade in sorted(totals):
        mean = _divide(sums[decade], totals[decade])
        results.append(
            DecadeAggregate(
                decade=decade,
                total_books=totals[decade],
                mean_distribution=mean,
                dominant_topic=dominant_topic(mean),
            )
        )

    return results


def compute_topic_correlations(
    docs: Iterable[DocumentRecord],
    needs_normalization: bool,
) -> list[list[float]]:
    """Compute the topic-by-topic Pearson correlation matrix.

    Every document contributes one normalized vector of topic weights.

    Returns:
        A TOPIC_COUNT x TOPIC_COUNT symmetric matrix, 0-indexed by topic
    """
    vectors = [
        [distribution[key] for key in TOPIC_KEYS]
        for distribution in (normalize(doc, needs_normalization) for doc in docs)
    ]
    return pearson_correlation_matrix(vectors, TOPIC_COUNT)


def compute_topic_links(
    matrix: Sequence[Sequence[float]],
    threshold: float = LINK_THRESHOLD,
) -> list[TopicLink]:
    """Select the topic pairs strongly enough correlated to be linked.

    Returns:
        One TopicLink per pair i < j with |correlation| above the threshold,
        using 1-based topic numbers
    """
    links = []
    for i in range(len(matrix)):
        for j in range(i + 1, len(matrix[i])):
            value = matrix[i][j]
            if abs(value) > threshold:
                links.append(TopicLink(source=i + 1, target=j + 1, value=value))
    return links


def compute_topic_prevalence(
    docs: Sequence[DocumentRecord],
    labels: Sequence[TopicLabel],
    needs_normalization: bool,
) -> list[TopicPrevalence]:
    """Measure how present each topic is in the whole corpus.

    Args:
        docs: All documents of the dataset
        labels: Topic label table, used for naming
        needs_normalization: The dataset-wide normalization decision

    Returns:
        One TopicPrevalence per topic, ordered by topic number
    """
    sums = empty_distribution()
    dominant_counts = {number: 0 for number in range(1, TOPIC_COUNT + 1)}

    for doc in docs:
        _add_into(sums, normalize(doc, needs_normalization))

        number = parse_topic_number(doc.dominant_topic)
        if number in dominant_counts:
            dominant_counts[number] += 1

    means = _divide(sums, len(docs))

    return [
        TopicPrevalence(
            id=number,
            name=topic_name(labels, number),
            mean_weight=means[key],
            dominant_count=dominant_counts[number],
        )
        for number, key in enumerate(TOPIC_KEYS, start=1)
    ]


def _unique(words: Iterable[str]) -> list[str]:
    # dict preserves insertion order, so this keeps the first occurrence
    return list(dict.fromkeys(words))


def prepare_topic_keywords(
    nmf_rows: Sequence[Sequence[str]],
    labels: Sequence[TopicLabel],
) -> list[TopicKeywords]:
    """Name the ranked keyword rows produced by the topic model.

    Row 0 is a header. Row i (for i >= 1) holds the keywords of topic i, of
    which empty cells are dropped.

    Examples:
        >>> rows = [["Topic", "Word 1"], ["Topic 1", "home"]]
        >>> prepare_topic_keywords(rows, [])[0].keywords
        ('Topic 1', 'home')
    """
    topics = []
    for number, row in enumerate(nmf_rows[1:], start=1):
        keywords = _unique(str(cell) for cell in row if cell)
        topics.append(
            TopicKeywords(id=number, name=topic_name(labels, number), keywords=keywords)
        )
    return topics


def merge_keywords(
    base_topics: Sequence[TopicKeywords],
    expanded_words: Iterable[ExpandedWord],
) -> list[TopicKeywords]:
    """Extend each topic's keywords with the expanded wordlist.

    Words are appended in the order they are encountered, unless the topic
    already has them (case-sensitive). Words for topics that are not in
    base_topics are ignored. The inputs are left untouched.

    Returns:
        New TopicKeywords objects, in the order of base_topics
    """
    keywords = {topic.id: list(topic.keywords) for topic in base_topics}
    seen = {topic.id: set(topic.keywords) for topic in base_topics}

    for item in expanded_words:
        if not item.topic_id or not item.word:
            continue
        if item.topic_id not in keywords:
            continue
        if item.word in seen[item.topic_id]:
            continue

        keywords[item.topic_id].append(item.word)
        seen[item.topic_id].add(item.word)

    return [
        TopicKeywords(id=topic.id, name=topic.name, keywords=keywords[topic.id])
        for topic in base_topics
    ]
