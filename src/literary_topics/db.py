import sqlite3
from pathlib import Path

from literary_topics.models import (
    TOPIC_KEYS,
    AuthorAggregate,
    DecadeAggregate,
    TopicKeywords,
    TopicLink,
    TopicPrevalence,
    YearAggregate,
    parse_topic_number,
    topic_key,
)

TOPIC_TABLE = """
    CREATE TABLE IF NOT EXISTS topic (
        topic_id INTEGER PRIMARY KEY NOT NULL,
        name TEXT NOT NULL
    )
"""

TOPIC_KEYWORD_TABLE = """
    CREATE TABLE IF NOT EXISTS topic_keyword (
        topic_id INTEGER NOT NULL,
        rank INTEGER NOT NULL,
        word TEXT NOT NULL,
        PRIMARY KEY (topic_id, rank)
    )
"""

YEAR_AGGREGATE_TABLE = """
    CREATE TABLE IF NOT EXISTS year_aggregate (
        year INTEGER PRIMARY KEY NOT NULL,
        document_count INTEGER NOT NULL
    )
"""

YEAR_TOPIC_TABLE = """
    CREATE TABLE IF NOT EXISTS year_topic (
        year INTEGER NOT NULL,
        topic_id INTEGER NOT NULL,
        weight REAL NOT NULL,
        PRIMARY KEY (year, topic_id),
        FOREIGN KEY (year) REFERENCES year_aggregate(year)
    )
"""

DECADE_AGGREGATE_TABLE = """
    CREATE TABLE IF NOT EXISTS decade_aggregate (
        decade INTEGER PRIMARY KEY NOT NULL,
        total_books INTEGER NOT NULL,
        dominant_topic INTEGER NOT NULL
    )
"""

DECADE_TOPIC_TABLE = """
    CREATE TABLE IF NOT EXISTS decade_topic (
        decade INTEGER NOT NULL,
        topic_id INTEGER NOT NULL,
        weight REAL NOT NULL,
        PRIMARY KEY (decade, topic_id),
        FOREIGN KEY (decade) REFERENCES decade_aggregate(decade)
    )
"""

AUTHOR_AGGREGATE_TABLE = """
    CREATE TABLE IF NOT EXISTS author_aggregate (
        rank INTEGER PRIMARY KEY NOT NULL,
        name TEXT NOT NULL UNIQUE,
        document_count INTEGER NOT NULL,
        distinct_book_count INTEGER NOT NULL
    )
"""

AUTHOR_TOPIC_TABLE = """
    CREATE TABLE IF NOT EXISTS author_topic (
        name TEXT NOT NULL,
        topic_id INTEGER NOT NULL,
        weight REAL NOT NULL,
        PRIMARY KEY (name, topic_id),
        FOREIGN KEY (name) REFERENCES author_aggregate(name)
    )
"""

TOPIC_CORRELATION_TABLE = """
    CREATE TABLE IF NOT EXISTS topic_correlation (
        topic_a INTEGER NOT NULL,
        topic_b INTEGER NOT NULL,
        correlation REAL NOT NULL,
        PRIMARY KEY (topic_a, topic_b)
    )
"""

TOPIC_LINK_TABLE = """
    CREATE TABLE IF NOT EXISTS topic_link (
        source INTEGER NOT NULL,
        target INTEGER NOT NULL,
        correlation REAL NOT NULL,
        PRIMARY KEY (source, target)
    )
"""

TOPIC_PREVALENCE_TABLE = """
    CREATE TABLE IF NOT EXISTS topic_prevalence (
        topic_id INTEGER PRIMARY KEY NOT NULL,
        name TEXT NOT NULL,
        mean_weight REAL NOT NULL,
        dominant_count INTEGER NOT NULL
    )
"""

CORPUS_SUMMARY_TABLE = """
    CREATE TABLE IF NOT EXISTS corpus_summary (
        document_count INTEGER NOT NULL,
        sample_size INTEGER NOT NULL,
        sample_mean_total REAL NOT NULL,
        needs_normalization BOOLEAN NOT NULL
    )
"""


def get_connection(db_path: str | Path) -> sqlite3.Connection:
    """Get a connection to the database.

    Args:
        db_path: Path to the SQLite database file

    Returns:
        SQLite connection
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(path)


def _topic_rows(prefix: tuple, distribution: dict[str, float]) -> list[tuple]:
    return [
        (*prefix, number, distribution.get(key, 0.0))
        for number, key in enumerate(TOPIC_KEYS, start=1)
    ]


def ensure_topic_tables(db_path: str | Path) -> None:
    """Ensure the topic and topic_keyword tables exist."""
    with get_connection(db_path) as conn:
        conn.execute(TOPIC_TABLE)
        conn.execute(TOPIC_KEYWORD_TABLE)
        conn.commit()


def replace_topic_keywords(db_path: str | Path, topics: list[TopicKeywords]) -> None:
    """Replace all topics and their keywords in the database.

    Args:
        db_path: Path to the SQLite database file
        topics: List of TopicKeywords objects

    Keywords are stored with their 1-based rank, so the original order can be
    restored. Both tables are replaced in a single transaction.
    """
    ensure_topic_tables(db_path)

    with get_connection(db_path) as conn:
        conn.execute("DELETE FROM topic_keyword")
        conn.execute("DELETE FROM topic")

        conn.executemany(
            "INSERT INTO topic (topic_id, name) VALUES (?, ?)",
            [(topic.id, topic.name) for topic in topics],
        )
        conn.executemany(
            "INSERT INTO topic_keyword (topic_id, rank, word) VALUES (?, ?, ?)",
            [
                (topic.id, rank, word)
                for topic in topics
                for rank, word in enumerate(topic.keywords, start=1)
            ],
        )
        conn.commit()


def read_topic_keywords(db_path: str | Path) -> list[TopicKeywords]:
    """Read all topics with their ranked keywords."""
    ensure_topic_tables(db_path)

    with get_connection(db_path) as conn:
        topics = conn.execute("SELECT topic_id, name FROM topic ORDER BY topic_id").fetchall()
        rows = conn.execute(
            "SELECT topic_id, word FROM topic_keyword ORDER BY topic_id, rank"
        ).fetchall()

    words: dict[int, list[str]] = {topic_id: [] for topic_id, _ in topics}
    for topic_id, word in rows:
        words.setdefault(topic_id, []).append(word)

    return [
        TopicKeywords(id=topic_id, name=name, keywords=words[topic_id])
        for topic_id, name in topics
    ]


def ensure_year_tables(db_path: str | Path) -> None:
    """Ensure the year_aggregate and year_topic tables exist."""
    with get_connection(db_path) as conn:
        conn.execute(YEAR_AGGREGATE_TABLE)
        conn.execute(YEAR_TOPIC_TABLE)
        conn.commit()


def replace_year_aggregates(
    db_path: str | Path, aggregates: dict[int, YearAggregate]
) -> None:
    """Replace all yearly aggregates in the database.

    Args:
        db_path: Path to the SQLite database file
        aggregates: Mapping of year to YearAggregate

    This atomically replaces the entire table contents.
    """
    ensure_year_tables(db_path)

    with get_connection(db_path) as conn:
        conn.execute("DELETE FROM year_topic")
        conn.execute("DELETE FROM year_aggregate")

        conn.executemany(
            "INSERT INTO year_aggregate (year, document_count) VALUES (?, ?)",
            [(a.year, a.document_count) for a in aggregates.values()],
        )
        conn.executemany(
            "INSERT INTO year_topic (year, topic_id, weight) VALUES (?, ?, ?)",
            [
                row
                for a in aggregates.values()
                for row in _topic_rows((a.year,), a.mean_distribution)
            ],
        )
        conn.commit()


def read_year_aggregates(db_path: str | Path) -> dict[int, YearAggregate]:
    """Read all yearly aggregates back from the database.

    Returns:
        Mapping of year to YearAggregate, in chronological order
    """
    ensure_year_tables(db_path)

    with get_connection(db_path) as conn:
        counts = conn.execute(
            "SELECT year, document_count FROM year_aggregate ORDER BY year"
        ).fetchall()
        weights = conn.execute("SELECT year, topic_id, weight FROM year_topic").fetchall()

    distributions: dict[int, dict[str, float]] = {
        year: {key: 0.0 for key in TOPIC_KEYS} for year, _ in counts
    }
    for year, topic_id, weight in weights:
        if year in distributions:
            distributions[year][topic_key(topic_id)] = weight

    return {
        year: YearAggregate(
            year=year, document_count=count, mean_distribution=distributions[year]
        )
        for year, count in counts
    }


def ensure_decade_tables(db_path: str | Path) -> None:
    """Ensure the decade_aggregate and decade_topic tables exist."""
    with get_connection(db_path) as conn:
        conn.execute(DECADE_AGGREGATE_TABLE)
        conn.execute(DECADE_TOPIC_TABLE)
        conn.commit()


def replace_decade_aggregates(
    db_path: str | Path, aggregates: list[DecadeAggregate]
) -> None:
    """Replace all decade aggregates in the database.

    The dominant topic is stored as its topic number.
    """
    ensure_decade_tables(db_path)

    with get_connection(db_path) as conn:
        conn.execute("DELETE FROM decade_topic")
        conn.execute("DELETE FROM decade_aggregate")

        conn.executemany(
            "INSERT INTO decade_aggregate (decade, total_books, dominant_topic) VALUES (?, ?, ?)",
            [
                (a.decade, a.total_books, parse_topic_number(a.dominant_topic))
                for a in aggregates
            ],
        )
        conn.executemany(
            "INSERT INTO decade_topic (decade, topic_id, weight) VALUES (?, ?, ?)",
            [
                row
                for a in aggregates
                for row in _topic_rows((a.decade,), a.mean_distribution)
            ],
        )
        conn.commit()


def ensure_author_tables(db_path: str | Path) -> None:
    """Ensure the author_aggregate and author_topic tables exist."""
    with get_connection(db_path) as conn:
        conn.execute(AUTHOR_AGGREGATE_TABLE)
        conn.execute(AUTHOR_TOPIC_TABLE)
        conn.commit()


def replace_author_aggregates(
    db_path: str | Path, authors: list[AuthorAggregate]
) -> None:
    """Replace the top authors in the database.

    Authors are stored with their 1-based rank in the given order.
    """
    ensure_author_tables(db_path)

    with get_connection(db_path) as conn:
        conn.execute("DELETE FROM author_topic")
        conn.execute("DELETE FROM author_aggregate")

        conn.executemany(
            """INSERT INTO author_aggregate
               (rank, name, document_count, distinct_book_count)
               VALUES (?, ?, ?, ?)""",
            [
                (rank, a.name, a.document_count, a.distinct_book_count)
                for rank, a in enumerate(authors, start=1)
            ],
        )
        conn.executemany(
            "INSERT INTO author_topic (name, topic_id, weight) VALUES (?, ?, ?)",
            [row for a in authors for row in _topic_rows((a.name,), a.mean_distribution)],
        )
        conn.commit()


def ensure_correlation_tables(db_path: str | Path) -> None:
    """Ensure the topic_correlation and topic_link tables exist."""
    with get_connection(db_path) as conn:
        conn.execute(TOPIC_CORRELATION_TABLE)
        conn.execute(TOPIC_LINK_TABLE)
        conn.commit()


def replace_topic_correlations(
    db_path: str | Path,
    matrix: list[list[float]],
    links: list[TopicLink],
) -> None:
    """Replace the correlation matrix and the topic network in the database.

    Args:
        db_path: Path to the SQLite database file
        matrix: Square correlation matrix, 0-indexed by topic
        links: Topic pairs to draw in the network

    Every cell of the matrix is stored with 1-based topic numbers.
    """
    ensure_correlation_tables(db_path)

    with get_connection(db_path) as conn:
        conn.execute("DELETE FROM topic_correlation")
        conn.execute("DELETE FROM topic_link")

        conn.executemany(
            "INSERT INTO topic_correlation (topic_a, topic_b, correlation) VALUES (?, ?, ?)",
            [
                (i + 1, j + 1, value)
                for i, row in enumerate(matrix)
                for j, value in enumerate(row)
            ],
        )
        conn.executemany(
            "INSERT INTO topic_link (source, target, correlation) VALUES (?, ?, ?)",
            [(link.source, link.target, link.value) for link in links],
        )
        conn.commit()


def read_topic_correlations(db_path: str | Path, size: int) -> list[list[float]]:
    """Read the correlation matrix back as nested lists."""
    ensure_correlation_tables(db_path)

    matrix = [[0.0] * size for _ in range(size)]
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT topic_a, topic_b, correlation FROM topic_correlation"
        ).fetchall()

    for topic_a, topic_b, value in rows:
        if 1 <= topic_a <= size and 1 <= topic_b <= size:
            matrix[topic_a - 1][topic_b - 1] = value

    return matrix


def ensure_prevalence_table(db_path: str | Path) -> None:
    """Ensure the topic_prevalence table exists."""
    with get_connection(db_path) as conn:
        conn.execute(TOPIC_PREVALENCE_TABLE)
        conn.commit()


def replace_topic_prevalence(
    db_path: str | Path, prevalence: list[TopicPrevalence]
) -> None:
    """Replace all topic prevalence data in the database."""
    ensure_prevalence_table(db_path)

    with get_connection(db_path) as conn:
        conn.execute("DELETE FROM topic_prevalence")
        conn.executemany(
            """INSERT INTO topic_prevalence (topic_id, name, mean_weight, dominant_count)
               VALUES (?, ?, ?, ?)""",
            [(p.id, p.name, p.mean_weight, p.dominant_count) for p in prevalence],
        )
        conn.commit()


def ensure_corpus_summary_table(db_path: str | Path) -> None:
    """Ensure the corpus_summary table exists."""
    with get_connection(db_path) as conn:
        conn.execute(CORPUS_SUMMARY_TABLE)
        conn.commit()


def replace_corpus_summary(
    db_path: str | Path,
    document_count: int,
    sample_size: int,
    sample_mean_total: float,
    needs_normalization: bool,
) -> None:
    """Replace the single row describing the loaded corpus."""
    ensure_corpus_summary_table(db_path)

    with get_connection(db_path) as conn:
        conn.execute("DELETE FROM corpus_summary")
        conn.execute(
            """INSERT INTO corpus_summary
               (document_count, sample_size, sample_mean_total, needs_normalization)
               VALUES (?, ?, ?, ?)""",
            (document_count, sample_size, sample_mean_total, needs_normalization),
        )
        conn.commit()
