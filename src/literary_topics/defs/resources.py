import dagster as dg

from literary_topics import db
from literary_topics.models import (
    AuthorAggregate,
    DecadeAggregate,
    TopicKeywords,
    TopicLink,
    TopicPrevalence,
    YearAggregate,
)


class AnalyticsDB(dg.ConfigurableResource):
    """SQLite database resource for the derived topic datasets.

    Wraps pure Python db module with Dagster resource pattern.
    Defaults to XDG_DATA_HOME/literary-topics/analytics.db.
    """

    db_path: str

    def get_connection(self):
        """Get a connection to the analytics database."""
        return db.get_connection(self.db_path)

    def replace_topic_keywords(self, topics: list[TopicKeywords]) -> None:
        """Replace all topics and keywords in the database."""
        db.replace_topic_keywords(self.db_path, topics)

    def read_topic_keywords(self) -> list[TopicKeywords]:
        """Read all topics and keywords from the database."""
        return db.read_topic_keywords(self.db_path)

    def replace_year_aggregates(self, aggregates: dict[int, YearAggregate]) -> None:
        """Replace all yearly aggregates in the database."""
        db.replace_year_aggregates(self.db_path, aggregates)

    def read_year_aggregates(self) -> dict[int, YearAggregate]:
        """Read all yearly aggregates from the database."""
        return db.read_year_aggregates(self.db_path)

    def replace_decade_aggregates(self, aggregates: list[DecadeAggregate]) -> None:
        """Replace all decade aggregates in the database."""
        db.replace_decade_aggregates(self.db_path, aggregates)

    def replace_author_aggregates(self, authors: list[AuthorAggregate]) -> None:
        """Replace the top authors in the database."""
        db.replace_author_aggregates(self.db_path, authors)

    def replace_topic_correlations(
        self, matrix: list[list[float]], links: list[TopicLink]
    ) -> None:
        """Replace the correlation matrix and topic network in the database."""
        db.replace_topic_correlations(self.db_path, matrix, links)

    def read_topic_correlations(self, size: int) -> list[list[float]]:
        """Read the correlation matrix from the database."""
        return db.read_topic_correlations(self.db_path, size)

    def replace_topic_prevalence(self, prevalence: list[TopicPrevalence]) -> None:
        """Replace all topic prevalence data in the database."""
        db.replace_topic_prevalence(self.db_path, prevalence)

    def replace_corpus_summary(
        self,
        document_count: int,
        sample_size: int,
        sample_mean_total: float,
        needs_normalization: bool,
    ) -> None:
        """Replace the corpus summary row in the database."""
        db.replace_corpus_summary(
            self.db_path, document_count, sample_size, sample_mean_total, needs_normalization
        )
