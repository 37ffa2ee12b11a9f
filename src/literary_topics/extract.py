import asyncio
import csv
import io
import logging
import math
import re
from pathlib import Path
from typing import Any
from urllib.parse import urljoin

import aiohttp

from literary_topics.config import SOURCE_DIR, TOPIC_COUNT
from literary_topics.models import (
    DocumentRecord,
    ExpandedWord,
    RawTables,
    TopicLabel,
    parse_topic_number,
    topic_key,
)

logger = logging.getLogger(__name__)

# Headers for well behaved requests
HEADERS = {"User-Agent": "LiteraryTopicsBot/1.0"}

# File names of the four tables exported by the topic model
TOPIC_LABELS_FILE = "topic_labels.csv"
NMF_TOPICS_FILE = "nmf_topics.csv"
DOCUMENT_TOPICS_FILE = "document_topic_distributions_with_metadata.csv"
WORDLIST_FILE = "wordlist.csv"

_INT_PATTERN = re.compile(r"^[+-]?\d+$")


class DataLoadError(Exception):
    """One or more of the source tables could not be loaded.

    A load is all or nothing: the pipeline never continues with a partial
    dataset, so every failing table is reported at once.

    Attributes:
        failures: Mapping of file name to the error raised while loading it
    """

    def __init__(self, failures: dict[str, BaseException]):
        self.failures = failures
        details = "; ".join(f"{name}: {error}" for name, error in failures.items())
        super().__init__(f"Failed to load {len(failures)} table(s): {details}")


async def download_text(url: str) -> str:
    """Download the content of a file and return it as text.

    Raises:
        aiohttp.ClientError: If the request fails or returns non-200 status.
    """
    async with aiohttp.ClientSession() as session:
        async with session.get(url, headers=HEADERS) as response:
            response.raise_for_status()
            return await response.text(encoding="utf-8-sig")


def is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


async def read_source_file(source: str | Path, filename: str) -> str:
    """Read one of the exported tables from a directory or a base URL.

    Exports written by Excel or pandas often start with a UTF-8 byte order
    mark, which is dropped so it does not end up in the first header name.

    Raises:
        FileNotFoundError: If the local file does not exist.
        aiohttp.ClientError: If the remote file could not be downloaded.
    """
    source = str(source)

    if is_remote(source):
        base = source if source.endswith("/") else source + "/"
        url = urljoin(base, filename)
        logger.info(f"Downloading {filename} from {url}")
        return await download_text(url)

    path = Path(source) / filename
    logger.info(f"Reading {filename} from {path}")
    return path.read_text(encoding="utf-8-sig")


def coerce_cell(text: str) -> Any:
    """Convert a CSV cell to a number where it looks like one.

    Empty cells become None, integers become int, other numbers become float
    and everything else is returned unchanged.

    Examples:
        >>> coerce_cell("1950"), coerce_cell("0.25"), coerce_cell(""), coerce_cell("Hamsun")
        (1950, 0.25, None, 'Hamsun')
    """
    stripped = text.strip()
    if not stripped:
        return None

    if _INT_PATTERN.match(stripped):
        return int(stripped)

    try:
        value = float(stripped)
    except ValueError:
        return text

    # "nan" and "inf" are words here, not numbers
    return value if math.isfinite(value) else text


def parse_csv_rows(text: str) -> list[list[str]]:
    """Parse CSV text into rows of cells, skipping empty lines."""
    reader = csv.reader(io.StringIO(text))
    return [row for row in reader if any(cell.strip() for cell in row)]


def parse_csv_records(text: str, dynamic_typing: bool = False) -> list[dict[str, Any]]:
    """Parse CSV text with a header row into one dict per row.

    Rows shorter than the header simply lack the trailing fields.

    Args:
        text: The CSV content
        dynamic_typing: Convert numeric cells with coerce_cell

    Returns:
        A list of records keyed by the header names
    """
    rows = parse_csv_rows(text)
    if not rows:
        return []

    header = [name.strip() for name in rows[0]]
    records = []
    for row in rows[1:]:
        record: dict[str, Any] = {}
        for name, cell in zip(header, row):
            record[name] = coerce_cell(cell) if dynamic_typing else cell
        records.append(record)

    return records


async def load_raw_tables(source: str | Path = SOURCE_DIR) -> RawTables:
    """Load the four tables exported by the topic model.

    All four files are read concurrently. If any of them fails, the whole load
    fails with a single error listing every failing file.

    Args:
        source: A local directory or an http(s) base URL holding the files

    Returns:
        The parsed RawTables

    Raises:
        DataLoadError: If one or more files could not be read or parsed.
    """
    filenames = [TOPIC_LABELS_FILE, NMF_TOPICS_FILE, DOCUMENT_TOPICS_FILE, WORDLIST_FILE]
    logger.info(f"Loading {len(filenames)} tables from {source}")

    results = await asyncio.gather(
        *(read_source_file(source, name) for name in filenames),
        return_exceptions=True,
    )

    failures: dict[str, BaseException] = {}
    texts: dict[str, str] = {}
    for name, result in zip(filenames, results):
        if isinstance(result, BaseException):
            failures[name] = result
        else:
            texts[name] = result

    if failures:
        for name, error in failures.items():
            logger.error(f"Could not load {name}: {error}")
        raise DataLoadError(failures)

    try:
        tables = RawTables(
            topic_labels=parse_csv_records(texts[TOPIC_LABELS_FILE]),
            nmf_topics=parse_csv_rows(texts[NMF_TOPICS_FILE]),
            document_topics=parse_csv_records(texts[DOCUMENT_TOPICS_FILE], dynamic_typing=True),
            wordlist=parse_csv_rows(texts[WORDLIST_FILE]),
        )
    except csv.Error as e:
        raise DataLoadError({"csv": e}) from e

    logger.info(
        f"Loaded {len(tables.topic_labels)} labels, {len(tables.nmf_topics)} NMF rows, "
        f"{len(tables.document_topics)} documents and {len(tables.wordlist)} wordlist rows"
    )
    return tables


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _as_year(value: Any) -> int | None:
    number = _as_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def parse_document_record(row: dict[str, Any]) -> DocumentRecord:
    """Build a DocumentRecord from one row of the document-topic table.

    Never raises on malformed cells: anything that cannot be interpreted is
    treated as missing.
    """
    return DocumentRecord(
        author=_as_text(row.get("Author")),
        year=_as_year(row.get("Year")),
        title=_as_text(row.get("Book Title")),
        dominant_topic=_as_text(row.get("Dominant_Topic")),
        topic_weights=tuple(
            _as_float(row.get(topic_key(i))) for i in range(1, TOPIC_COUNT + 1)
        ),
    )


def parse_document_records(rows: list[dict[str, Any]]) -> list[DocumentRecord]:
    """Build DocumentRecords for every row of the document-topic table."""
    documents = [parse_document_record(row) for row in rows]

    missing_year = sum(1 for doc in documents if doc.year is None)
    missing_author = sum(1 for doc in documents if not (doc.author or "").strip())
    if missing_year or missing_author:
        logger.info(
            f"{missing_year} documents without year and {missing_author} without author"
        )

    return documents


def parse_topic_labels(rows: list[dict[str, Any]]) -> list[TopicLabel]:
    """Build TopicLabels from the label table, skipping rows without a number."""
    labels = []
    for row in rows:
        number = _as_text(row.get("Topic Number"))
        if number is None:
            continue
        name = _as_text(row.get("Topic Name")) or number
        labels.append(TopicLabel(number=number, name=name))
    return labels


def parse_expanded_wordlist(rows: list[list[str]]) -> list[ExpandedWord]:
    """Flatten the expanded wordlist into (topic, word) pairs.

    Each row holds a topic identifier in column 0 (a bare number or a string
    ending in digits, e.g. "Topic_7") followed by keywords. A first row that
    mentions "topic" or does not start with a number is a header. Rows whose
    topic cannot be identified are skipped.

    Examples:
        >>> parse_expanded_wordlist([["Topic", "Words"], ["Topic_2", " sea ", ""]])
        [ExpandedWord(topic_id=2, word='sea')]
    """
    words = []
    for index, row in enumerate(rows):
        if not row:
            continue

        first = row[0].strip()
        if index == 0 and ("topic" in first.lower() or not re.match(r"[+-]?\d", first)):
            continue

        topic_id = parse_topic_number(first)
        if topic_id is None:
            logger.debug(f"Skipping wordlist row {index}: no topic in '{first}'")
            continue

        for cell in row[1:]:
            word = cell.strip()
            if word:
                words.append(ExpandedWord(topic_id=topic_id, word=word))

    return words
