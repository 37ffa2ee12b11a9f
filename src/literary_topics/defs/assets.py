from collections import Counter

import dagster as dg
from pydantic import Field

from literary_topics.config import (
    LINK_THRESHOLD,
    NORMALIZATION_THRESHOLD,
    SOURCE_DIR,
    TOP_AUTHORS,
    TOPIC_COUNT,
)
from literary_topics.defs.resources import AnalyticsDB
from literary_topics.diagnostics import (
    author_distribution_totals,
    log_document_sample,
    normalization_report,
)
from literary_topics.extract import (
    load_raw_tables,
    parse_document_records,
    parse_expanded_wordlist,
    parse_topic_labels,
)
from literary_topics.models import DocumentRecord, RawTables, TopicLabel
from literary_topics.transform import (
    aggregate_by_decade,
    aggregate_by_year,
    compute_topic_correlations,
    compute_topic_links,
    compute_topic_prevalence,
    merge_keywords,
    needs_normalization,
    prepare_topic_keywords,
    top_authors,
)


# ==============================================================================
# Source Domain: Tables exported by the offline topic model
# ==============================================================================


class SourceConfig(dg.Config):
    """Configuration for where the topic model exports are read from."""

    source: str = Field(
        default=str(SOURCE_DIR),
        description="Local directory or http(s) base URL holding the four CSV files",
    )


@dg.asset(io_manager_key="raw_tables_io")
async def source_tables(
    context: dg.AssetExecutionContext, config: SourceConfig
) -> RawTables:
    """Load the four tables exported by the topic model.

    Reads topic labels, NMF keywords, document-topic distributions and the
    expanded wordlist. If any of the files cannot be loaded the whole load
    fails, nothing downstream is recomputed from a partial dataset.
    """
    context.log.info(f"Loading topic model exports from {config.source}")
    tables = await load_raw_tables(config.source)
    context.log.info(f"Loaded {len(tables.document_topics)} document rows")
    return tables


@dg.asset_check(asset=source_tables)
def source_tables_complete(
    _: dg.AssetCheckExecutionContext, source_tables: RawTables
) -> dg.AssetCheckResult:
    """Check that every table has content and the NMF table covers all topics."""
    sizes = {
        "topic_labels": len(source_tables.topic_labels),
        "nmf_topics": len(source_tables.nmf_topics),
        "document_topics": len(source_tables.document_topics),
        "wordlist": len(source_tables.wordlist),
    }

    issues = [f"{name} is empty" for name, size in sizes.items() if size == 0]

    # Row 0 of the NMF table is a header
    nmf_topic_rows = max(sizes["nmf_topics"] - 1, 0)
    if sizes["nmf_topics"] and nmf_topic_rows != TOPIC_COUNT:
        issues.append(f"NMF table has {nmf_topic_rows} topics, expected {TOPIC_COUNT}")

    passed = len(issues) == 0

    return dg.AssetCheckResult(
        passed=passed,
        description=f"All tables loaded ({sizes['document_topics']} documents)"
        if passed
        else "; ".join(issues),
        metadata={**sizes, "issues": issues},
    )


@dg.asset
def topic_labels(
    context: dg.AssetExecutionContext, source_tables: RawTables
) -> list[TopicLabel]:
    """Human readable topic names from the label table."""
    labels = parse_topic_labels(source_tables.topic_labels)
    context.log.info(f"Found {len(labels)} topic labels")
    return labels


@dg.asset
def document_topics(
    context: dg.AssetExecutionContext, source_tables: RawTables
) -> list[DocumentRecord]:
    """Parse the document-topic table into immutable document records.

    Malformed cells never fail the parse: missing or unparseable values are
    kept as missing and handled by each aggregation.
    """
    documents = parse_document_records(source_tables.document_topics)
    context.log.info(f"Parsed {len(documents)} documents")
    return documents


@dg.asset_check(asset=document_topics)
def documents_have_metadata(
    _: dg.AssetCheckExecutionContext, document_topics: list[DocumentRecord]
) -> dg.AssetCheckResult:
    """Report how many documents lack the fields the aggregations group by.

    Documents without a year or author are left out of the respective
    aggregates. That is expected for some rows, so this only fails when no
    document was parsed at all.
    """
    total = len(document_topics)
    missing_year = sum(1 for doc in document_topics if not doc.year)
    missing_author = sum(1 for doc in document_topics if not (doc.author or "").strip())
    missing_title = sum(1 for doc in document_topics if doc.title is None)
    without_weights = sum(
        1 for doc in document_topics if all(w is None for w in doc.topic_weights)
    )

    passed = total > 0

    return dg.AssetCheckResult(
        passed=passed,
        description=f"{total} documents, {missing_year} without year, {missing_author} without author"
        if passed
        else "No documents found",
        metadata={
            "total": total,
            "missing_year": missing_year,
            "missing_author": missing_author,
            "missing_title": missing_title,
            "without_topic_weights": without_weights,
        },
    )


@dg.asset(automation_condition=dg.AutomationCondition.eager())
def normalization(
    context: dg.AssetExecutionContext,
    analytics_db: AnalyticsDB,
    document_topics: list[DocumentRecord],
) -> bool:
    """Decide once whether this dataset's topic weights must be normalized.

    The decision is taken from a sample of the first documents and shared by
    every aggregation below, so all derived datasets agree with each other.

    Table: corpus_summary (document_count, sample_size, sample_mean_total, needs_normalization)
    """
    decision = needs_normalization(document_topics)
    report = normalization_report(document_topics, decision)
    log_document_sample(document_topics)

    context.log.info(
        f"Sample mean topic total {report.sample_mean_total:.4f} over "
        f"{report.sample_size} documents, normalization needed: {decision}"
    )

    analytics_db.replace_corpus_summary(
        document_count=len(document_topics),
        sample_size=report.sample_size,
        sample_mean_total=report.sample_mean_total,
        needs_normalization=decision,
    )
    return decision


@dg.asset_check(asset=normalization)
def normalization_matches_sample(
    _: dg.AssetCheckExecutionContext, analytics_db: AnalyticsDB
) -> dg.AssetCheckResult:
    """Check that the stored decision agrees with the stored sample mean."""
    with analytics_db.get_connection() as conn:
        row = conn.execute(
            "SELECT document_count, sample_size, sample_mean_total, needs_normalization "
            "FROM corpus_summary"
        ).fetchone()

    if row is None:
        return dg.AssetCheckResult(passed=False, description="No corpus summary stored")

    document_count, sample_size, sample_mean, decision = row
    expected = sample_size > 0 and sample_mean < NORMALIZATION_THRESHOLD
    passed = bool(decision) == expected

    return dg.AssetCheckResult(
        passed=passed,
        description=f"Normalization {'applied' if decision else 'skipped'} "
        f"(sample mean {sample_mean:.4f})"
        if passed
        else f"Stored decision {bool(decision)} does not match sample mean {sample_mean:.4f}",
        metadata={
            "document_count": document_count,
            "sample_size": sample_size,
            "sample_mean_total": round(sample_mean, 4),
            "threshold": NORMALIZATION_THRESHOLD,
        },
    )


# ==============================================================================
# Temporal Domain: Topic distributions per year and decade
# ==============================================================================


@dg.asset(automation_condition=dg.AutomationCondition.eager())
def year_aggregates(
    context: dg.AssetExecutionContext,
    analytics_db: AnalyticsDB,
    document_topics: list[DocumentRecord],
    normalization: bool,
) -> None:
    """Compute the mean topic distribution of each publication year.

    Tables: year_aggregate (year, document_count), year_topic (year, topic_id, weight)
    """
    context.log.info("Aggregating documents by year")
    aggregates = aggregate_by_year(document_topics, normalization)

    if aggregates:
        context.log.info(
            f"Found {len(aggregates)} years from {min(aggregates)} to {max(aggregates)}"
        )

    analytics_db.replace_year_aggregates(aggregates)
    context.log.info(f"Stored yearly aggregates to {analytics_db.db_path}")


@dg.asset_check(
    asset=year_aggregates,
    additional_ins={"document_topics": dg.AssetIn("document_topics")},
)
def year_counts_match_documents(
    _: dg.AssetCheckExecutionContext,
    analytics_db: AnalyticsDB,
    document_topics: list[DocumentRecord],
) -> dg.AssetCheckResult:
    """Check that every dated document is counted in exactly one year."""
    with analytics_db.get_connection() as conn:
        cursor = conn.execute("SELECT COALESCE(SUM(document_count), 0) FROM year_aggregate")
        stored = cursor.fetchone()[0]

        cursor = conn.execute("SELECT COUNT(*) FROM year_aggregate")
        years = cursor.fetchone()[0]

    expected = sum(1 for doc in document_topics if doc.year)
    passed = stored == expected

    return dg.AssetCheckResult(
        passed=passed,
        description=f"{stored} documents over {years} years"
        if passed
        else f"Years count {stored} documents, expected {expected}",
        metadata={"stored": stored, "expected": expected, "years": years},
    )


@dg.asset(
    deps=[dg.AssetDep("year_aggregates")],
    automation_condition=dg.AutomationCondition.eager(),
)
def decade_aggregates(
    context: dg.AssetExecutionContext,
    analytics_db: AnalyticsDB,
) -> None:
    """Combine the yearly aggregates into decades with a dominant topic.

    Tables: decade_aggregate (decade, total_books, dominant_topic),
    decade_topic (decade, topic_id, weight)
    """
    years = analytics_db.read_year_aggregates()
    context.log.info(f"Loaded {len(years)} yearly aggregates from database")

    decades = aggregate_by_decade(years)
    for decade in decades:
        top = ", ".join(f"{key} ({value:.3f})" for key, value in decade.top_topics())
        context.log.info(f"  {decade.decade}s: {decade.total_books} books, top topics {top}")

    analytics_db.replace_decade_aggregates(decades)
    context.log.info(f"Stored {len(decades)} decades to {analytics_db.db_path}")


@dg.asset_check(asset=decade_aggregates)
def decade_dominant_topics_valid(
    _: dg.AssetCheckExecutionContext, analytics_db: AnalyticsDB
) -> dg.AssetCheckResult:
    """Check that each decade's dominant topic has its highest mean weight."""
    with analytics_db.get_connection() as conn:
        decades = conn.execute(
            "SELECT decade, dominant_topic FROM decade_aggregate ORDER BY decade"
        ).fetchall()
        weights = conn.execute(
            "SELECT decade, topic_id, weight FROM decade_topic ORDER BY decade, topic_id"
        ).fetchall()

    by_decade: dict[int, list[tuple[int, float]]] = {}
    for decade, topic_id, weight in weights:
        by_decade.setdefault(decade, []).append((topic_id, weight))

    mismatches = []
    for decade, dominant in decades:
        topics = by_decade.get(decade, [])
        if not topics:
            mismatches.append(decade)
            continue
        # max() returns the first maximum, which is the lowest topic id
        best_topic = max(topics, key=lambda item: item[1])[0]
        if best_topic != dominant:
            mismatches.append(decade)

    passed = len(mismatches) == 0

    return dg.AssetCheckResult(
        passed=passed,
        description=f"All {len(decades)} decades have a valid dominant topic"
        if passed
        else f"Dominant topic mismatch in decades: {mismatches}",
        metadata={"decades": len(decades), "mismatches": mismatches},
    )


# ==============================================================================
# Author Domain: Topic distributions of the most prolific authors
# ==============================================================================


class AuthorConfig(dg.Config):
    """Configuration for the author ranking."""

    top_n: int = Field(
        default=TOP_AUTHORS,
        description="Number of authors with the most documents to store",
    )


@dg.asset(automation_condition=dg.AutomationCondition.eager())
def author_aggregates(
    context: dg.AssetExecutionContext,
    analytics_db: AnalyticsDB,
    config: AuthorConfig,
    document_topics: list[DocumentRecord],
    normalization: bool,
) -> None:
    """Compute topic distributions of the authors with the most documents.

    Tables: author_aggregate (rank, name, document_count, distinct_book_count),
    author_topic (name, topic_id, weight)
    """
    context.log.info(f"Ranking top {config.top_n} authors")
    authors = top_authors(document_topics, config.top_n, normalization)
    author_distribution_totals(authors)

    if authors:
        context.log.info(
            f"Most prolific: {authors[0].name} ({authors[0].document_count} documents)"
        )

    analytics_db.replace_author_aggregates(authors)
    context.log.info(f"Stored {len(authors)} authors to {analytics_db.db_path}")


@dg.asset_check(asset=author_aggregates)
def authors_ranked_by_count(
    _: dg.AssetCheckExecutionContext, analytics_db: AnalyticsDB
) -> dg.AssetCheckResult:
    """Check that stored authors are ordered by document count, descending."""
    with analytics_db.get_connection() as conn:
        cursor = conn.execute(
            "SELECT name, document_count, distinct_book_count FROM author_aggregate ORDER BY rank"
        )
        rows = cursor.fetchall()

    counts = [row[1] for row in rows]
    sorted_ok = all(a >= b for a, b in zip(counts, counts[1:]))
    books_ok = all(books <= count for _, count, books in rows)
    passed = sorted_ok and books_ok

    issues = []
    if not sorted_ok:
        issues.append("Authors are not sorted by document count")
    if not books_ok:
        issues.append("Some authors have more distinct books than documents")

    return dg.AssetCheckResult(
        passed=passed,
        description=f"Stored {len(rows)} ranked authors"
        if passed
        else "; ".join(issues),
        metadata={"authors": len(rows), "issues": issues},
    )


# ==============================================================================
# Topic Domain: Correlations, prevalence and keywords
# ==============================================================================


class CorrelationConfig(dg.Config):
    """Configuration for the topic network."""

    link_threshold: float = Field(
        default=LINK_THRESHOLD,
        description="Minimum absolute correlation for two topics to be linked",
    )


@dg.asset(automation_condition=dg.AutomationCondition.eager())
def topic_correlations(
    context: dg.AssetExecutionContext,
    analytics_db: AnalyticsDB,
    config: CorrelationConfig,
    document_topics: list[DocumentRecord],
    normalization: bool,
) -> None:
    """Compute the topic correlation matrix and the topic network.

    Tables: topic_correlation (topic_a, topic_b, correlation),
    topic_link (source, target, correlation)
    """
    context.log.info(f"Correlating {TOPIC_COUNT} topics over {len(document_topics)} documents")
    matrix = compute_topic_correlations(document_topics, normalization)
    links = compute_topic_links(matrix, config.link_threshold)
    context.log.info(f"Found {len(links)} links above |r| > {config.link_threshold}")

    analytics_db.replace_topic_correlations(matrix, links)
    context.log.info(f"Stored topic correlations to {analytics_db.db_path}")


@dg.asset_check(asset=topic_correlations)
def correlation_matrix_valid(
    _: dg.AssetCheckExecutionContext, analytics_db: AnalyticsDB
) -> dg.AssetCheckResult:
    """Check that the matrix is symmetric, bounded and has a unit diagonal."""
    matrix = analytics_db.read_topic_correlations(TOPIC_COUNT)

    asymmetric = [
        (i + 1, j + 1)
        for i in range(TOPIC_COUNT)
        for j in range(i + 1, TOPIC_COUNT)
        if matrix[i][j] != matrix[j][i]
    ]
    out_of_range = sum(1 for row in matrix for value in row if not -1.0 <= value <= 1.0)
    bad_diagonal = [i + 1 for i in range(TOPIC_COUNT) if matrix[i][i] not in (0.0, 1.0)]
    constant_topics = [i + 1 for i in range(TOPIC_COUNT) if matrix[i][i] == 0.0]

    passed = not asymmetric and out_of_range == 0 and not bad_diagonal

    issues = []
    if asymmetric:
        issues.append(f"{len(asymmetric)} asymmetric pairs")
    if out_of_range:
        issues.append(f"{out_of_range} values outside [-1, 1]")
    if bad_diagonal:
        issues.append(f"Invalid diagonal for topics {bad_diagonal}")

    return dg.AssetCheckResult(
        passed=passed,
        description=f"Valid {TOPIC_COUNT}x{TOPIC_COUNT} correlation matrix"
        if passed
        else "; ".join(issues),
        metadata={
            "asymmetric_pairs": len(asymmetric),
            "out_of_range": out_of_range,
            "constant_topics": constant_topics,
        },
    )


@dg.asset(automation_condition=dg.AutomationCondition.eager())
def topic_prevalence(
    context: dg.AssetExecutionContext,
    analytics_db: AnalyticsDB,
    document_topics: list[DocumentRecord],
    topic_labels: list[TopicLabel],
    normalization: bool,
) -> None:
    """Compute how present each topic is over the whole corpus.

    Table: topic_prevalence (topic_id, name, mean_weight, dominant_count)
    """
    prevalence = compute_topic_prevalence(document_topics, topic_labels, normalization)

    strongest = max(prevalence, key=lambda p: p.mean_weight)
    context.log.info(f"Most prevalent topic: {strongest.name} ({strongest.mean_weight:.3f})")

    analytics_db.replace_topic_prevalence(prevalence)
    context.log.info(f"Stored topic prevalence to {analytics_db.db_path}")


@dg.asset(automation_condition=dg.AutomationCondition.eager())
def topic_keywords(
    context: dg.AssetExecutionContext,
    analytics_db: AnalyticsDB,
    source_tables: RawTables,
    topic_labels: list[TopicLabel],
) -> None:
    """Merge the ranked NMF keywords with the expanded wordlist per topic.

    Tables: topic (topic_id, name), topic_keyword (topic_id, rank, word)
    """
    base_topics = prepare_topic_keywords(source_tables.nmf_topics, topic_labels)
    expanded = parse_expanded_wordlist(source_tables.wordlist)
    context.log.info(
        f"Merging {len(expanded)} expanded words into {len(base_topics)} topics"
    )

    topics = merge_keywords(base_topics, expanded)
    added = sum(len(t.keywords) for t in topics) - sum(len(t.keywords) for t in base_topics)
    context.log.info(f"Added {added} new keywords")

    analytics_db.replace_topic_keywords(topics)
    context.log.info(f"Stored topic keywords to {analytics_db.db_path}")


@dg.asset_check(asset=topic_keywords)
def topic_keywords_unique(
    _: dg.AssetCheckExecutionContext, analytics_db: AnalyticsDB
) -> dg.AssetCheckResult:
    """Check that no topic lists the same keyword twice."""
    topics = analytics_db.read_topic_keywords()

    duplicated = {
        topic.id: [word for word, count in Counter(topic.keywords).items() if count > 1]
        for topic in topics
    }
    duplicated = {topic_id: words for topic_id, words in duplicated.items() if words}
    passed = len(duplicated) == 0

    return dg.AssetCheckResult(
        passed=passed,
        description=f"{len(topics)} topics with unique keywords"
        if passed
        else f"Duplicate keywords in topics {sorted(duplicated)}",
        metadata={
            "topics": len(topics),
            "keywords": sum(len(t.keywords) for t in topics),
            "duplicated_topics": sorted(duplicated),
        },
    )
