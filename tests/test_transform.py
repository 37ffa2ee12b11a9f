import unittest

from literary_topics.config import TOPIC_COUNT
from literary_topics.models import (
    DocumentRecord,
    ExpandedWord,
    TopicKeywords,
    TopicLabel,
    YearAggregate,
)
from literary_topics.transform import (
    aggregate_by_decade,
    aggregate_by_year,
    compute_topic_correlations,
    compute_topic_links,
    compute_topic_prevalence,
    dominant_topic,
    merge_keywords,
    needs_normalization,
    normalize,
    prepare_topic_keywords,
    sample_mean_total,
    top_authors,
    topic_evolution,
    topic_name,
)


def make_doc(author="A", year=1950, title=None, dominant=None, **weights):
    """Build a document from keyword weights such as t1=0.5, t3=0.2."""
    values = tuple(weights.get(f"t{i}") for i in range(1, TOPIC_COUNT + 1))
    return DocumentRecord(
        author=author, year=year, title=title, dominant_topic=dominant, topic_weights=values
    )


def distribution(**weights):
    values = {f"Topic_{i}": 0.0 for i in range(1, TOPIC_COUNT + 1)}
    for name, value in weights.items():
        values[f"Topic_{name[1:]}"] = value
    return values


class RowNormalizerTests(unittest.TestCase):
    def test_low_sample_mean_needs_normalization(self):
        docs = [make_doc(t1=0.2, t2=0.3), make_doc(t1=0.1)]
        self.assertTrue(needs_normalization(docs))

    def test_weights_summing_to_one_need_no_normalization(self):
        docs = [make_doc(t1=0.6, t2=0.4), make_doc(t3=1.0)]
        self.assertFalse(needs_normalization(docs))

    def test_sample_mean_exactly_at_threshold_is_not_normalized(self):
        self.assertFalse(needs_normalization([make_doc(t1=0.95)]))

    def test_empty_dataset_is_not_normalized(self):
        self.assertFalse(needs_normalization([]))
        self.assertEqual(sample_mean_total([]), 0.0)

    def test_only_first_hundred_documents_are_sampled(self):
        docs = [make_doc(t1=1.0)] * 100 + [make_doc()] * 500
        self.assertEqual(sample_mean_total(docs), 1.0)
        self.assertFalse(needs_normalization(docs))

    def test_normalized_weights_sum_to_one(self):
        result = normalize(make_doc(t1=0.2, t2=0.3, t5=0.1), True)

        self.assertAlmostEqual(sum(result.values()), 1.0, delta=1e-9)
        self.assertAlmostEqual(result["Topic_1"], 0.2 / 0.6)
        self.assertEqual(result["Topic_4"], 0.0)

    def test_zero_total_stays_all_zero(self):
        result = normalize(make_doc(t1=0.0), True)
        self.assertEqual(result, distribution())

        result = normalize(make_doc(), True)
        self.assertEqual(result, distribution())

    def test_raw_weights_are_kept_without_normalization(self):
        result = normalize(make_doc(t1=0.3, t2=0.3), False)
        self.assertEqual(result, distribution(t1=0.3, t2=0.3))
        self.assertEqual(len(result), TOPIC_COUNT)


class YearlyAggregatorTests(unittest.TestCase):
    def test_mean_distribution_per_year(self):
        docs = [
            make_doc(author="A", year=1950, t1=0.6, t2=0.4),
            make_doc(author="A", year=1950, t1=0.3, t2=0.3),
        ]

        years = aggregate_by_year(docs, False)

        self.assertEqual(list(years), [1950])
        year = years[1950]
        self.assertEqual(year.document_count, 2)
        self.assertAlmostEqual(year.mean_distribution["Topic_1"], 0.45)
        self.assertAlmostEqual(year.mean_distribution["Topic_2"], 0.35)
        for i in range(3, TOPIC_COUNT + 1):
            self.assertEqual(year.mean_distribution[f"Topic_{i}"], 0.0)

    def test_documents_without_year_are_skipped(self):
        docs = [
            make_doc(year=1950, t1=1.0),
            make_doc(year=None, t2=1.0),
            make_doc(year=1962, t3=1.0),
            make_doc(year=1962, t3=1.0),
        ]

        years = aggregate_by_year(docs, False)

        self.assertEqual(sorted(years), [1950, 1962])
        self.assertEqual(sum(y.document_count for y in years.values()), 3)
        self.assertEqual(years[1950].mean_distribution["Topic_2"], 0.0)

    def test_document_without_weights_counts_towards_year(self):
        docs = [make_doc(year=1950, t1=1.0), make_doc(year=1950)]

        year = aggregate_by_year(docs, True)[1950]

        self.assertEqual(year.document_count, 2)
        self.assertEqual(year.mean_distribution["Topic_1"], 0.5)

    def test_normalization_flag_is_applied_per_document(self):
        docs = [make_doc(year=2000, t1=0.1, t2=0.1), make_doc(year=2000, t3=0.5)]

        year = aggregate_by_year(docs, True)[2000]

        self.assertAlmostEqual(year.mean_distribution["Topic_1"], 0.25)
        self.assertAlmostEqual(year.mean_distribution["Topic_3"], 0.5)
        self.assertAlmostEqual(sum(year.mean_distribution.values()), 1.0)

    def test_topic_evolution_is_chronological(self):
        years = aggregate_by_year(
            [make_doc(year=1990, t1=1.0), make_doc(year=1950, t1=1.0), make_doc(year=1970, t1=1.0)],
            False,
        )

        self.assertEqual([y.year for y in topic_evolution(years)], [1950, 1970, 1990])


class AuthorAggregatorTests(unittest.TestCase):
    def test_authors_ranked_by_document_count(self):
        docs = [
            make_doc(author="Undset", title="Kristin", t1=1.0),
            make_doc(author="Hamsun", title="Sult", t2=1.0),
            make_doc(author="Hamsun", title="Pan", t2=0.5, t3=0.5),
            make_doc(author="Ibsen", title="Brand", t4=1.0),
            make_doc(author="Hamsun", title="Sult", t2=1.0),
        ]

        authors = top_authors(docs, 10, False)

        self.assertEqual([a.name for a in authors], ["Hamsun", "Undset", "Ibsen"])
        hamsun = authors[0]
        self.assertEqual(hamsun.document_count, 3)
        self.assertEqual(hamsun.distinct_book_count, 2)
        self.assertAlmostEqual(hamsun.mean_distribution["Topic_2"], 2.5 / 3)
        self.assertAlmostEqual(hamsun.mean_distribution["Topic_3"], 0.5 / 3)

    def test_ties_keep_encounter_order(self):
        docs = [
            make_doc(author="B", t1=1.0),
            make_doc(author="A", t1=1.0),
            make_doc(author="C", t1=1.0),
            make_doc(author="C", t1=1.0),
        ]

        authors = top_authors(docs, 3, False)

        self.assertEqual([a.name for a in authors], ["C", "B", "A"])

    def test_blank_authors_are_skipped_and_names_trimmed(self):
        docs = [
            make_doc(author="  ", t1=1.0),
            make_doc(author=None, t1=1.0),
            make_doc(author="Hamsun ", title="Sult", t1=1.0),
            make_doc(author=" Hamsun", title=None, t1=1.0),
        ]

        authors = top_authors(docs, 5, False)

        self.assertEqual(len(authors), 1)
        self.assertEqual(authors[0].name, "Hamsun")
        self.assertEqual(authors[0].document_count, 2)
        self.assertEqual(authors[0].distinct_book_count, 1)

    def test_only_top_n_are_returned(self):
        docs = [make_doc(author=name, t1=1.0) for name in "AABBBCD"]

        authors = top_authors(docs, 2, False)

        self.assertEqual([(a.name, a.document_count) for a in authors], [("B", 3), ("A", 2)])
        excluded = {"C": 1, "D": 1}
        self.assertTrue(all(a.document_count >= max(excluded.values()) for a in authors))


class DecadeAggregatorTests(unittest.TestCase):
    def test_years_are_weighted_by_document_count(self):
        years = {
            1951: YearAggregate(1951, 1, distribution(t1=1.0)),
            1958: YearAggregate(1958, 3, distribution(t2=1.0)),
            1962: YearAggregate(1962, 2, distribution(t3=0.5, t4=0.5)),
        }

        decades = aggregate_by_decade(years)

        self.assertEqual([d.decade for d in decades], [1950, 1960])
        fifties = decades[0]
        self.assertEqual(fifties.total_books, 4)
        self.assertAlmostEqual(fifties.mean_distribution["Topic_1"], 0.25)
        self.assertAlmostEqual(fifties.mean_distribution["Topic_2"], 0.75)
        self.assertEqual(fifties.dominant_topic, "Topic_2")

    def test_dominant_topic_tie_goes_to_lowest_id(self):
        years = {1962: YearAggregate(1962, 2, distribution(t3=0.5, t4=0.5))}

        decade = aggregate_by_decade(years)[0]

        self.assertEqual(decade.dominant_topic, "Topic_3")
        self.assertEqual(dominant_topic(distribution()), "Topic_1")

    def test_decades_are_sorted_and_split_on_boundaries(self):
        years = {
            2000: YearAggregate(2000, 1, distribution(t1=1.0)),
            1949: YearAggregate(1949, 1, distribution(t1=1.0)),
            1950: YearAggregate(1950, 1, distribution(t1=1.0)),
        }

        self.assertEqual([d.decade for d in aggregate_by_decade(years)], [1940, 1950, 2000])

    def test_top_topics(self):
        years = {1970: YearAggregate(1970, 1, distribution(t1=0.1, t5=0.6, t9=0.3))}

        decade = aggregate_by_decade(years)[0]

        self.assertEqual([key for key, _ in decade.top_topics()], ["Topic_5", "Topic_9", "Topic_1"])


class CorrelationEngineTests(unittest.TestCase):
    def test_matrix_shape_and_invariants(self):
        docs = [
            make_doc(t1=0.2, t2=0.8),
            make_doc(t1=0.5, t2=0.5),
            make_doc(t1=0.9, t2=0.1),
            make_doc(t1=0.4, t3=0.6),
        ]

        m = compute_topic_correlations(docs, False)

        self.assertEqual(len(m), TOPIC_COUNT)
        self.assertTrue(all(len(row) == TOPIC_COUNT for row in m))
        for i in range(TOPIC_COUNT):
            for j in range(TOPIC_COUNT):
                self.assertEqual(m[i][j], m[j][i])
                self.assertTrue(-1.0 <= m[i][j] <= 1.0)
        for i in range(3):
            self.assertEqual(m[i][i], 1.0)
        # Topics 4..13 never vary
        self.assertEqual(m[3][3], 0.0)
        self.assertEqual(m[0][5], 0.0)

    def test_complementary_topics_are_negatively_correlated(self):
        docs = [make_doc(t1=0.2, t2=0.8), make_doc(t1=0.5, t2=0.5), make_doc(t1=0.9, t2=0.1)]

        m = compute_topic_correlations(docs, False)

        self.assertAlmostEqual(m[0][1], -1.0)

    def test_constant_topic_gives_zero_not_nan(self):
        docs = [make_doc(t1=0.3, t2=0.1), make_doc(t1=0.3, t2=0.6)]

        m = compute_topic_correlations(docs, False)

        self.assertEqual(m[0][1], 0.0)
        self.assertEqual(m[1][0], 0.0)
        self.assertEqual(m[0][0], 0.0)

    def test_links_above_threshold(self):
        matrix = [
            [1.0, 0.3, -0.2],
            [0.3, 1.0, 0.01],
            [-0.2, 0.01, 1.0],
        ]

        links = compute_topic_links(matrix, threshold=0.05)

        self.assertEqual([(link.source, link.target, link.value) for link in links], [(1, 2, 0.3), (1, 3, -0.2)])


class KeywordMergerTests(unittest.TestCase):
    def test_expanded_words_are_appended_once(self):
        base = [
            TopicKeywords(id=1, name="Home", keywords=["house", "family"]),
            TopicKeywords(id=2, name="Sea", keywords=["ship"]),
        ]
        expanded = [
            ExpandedWord(1, "garden"),
            ExpandedWord(1, "house"),
            ExpandedWord(2, "wave"),
            ExpandedWord(1, "garden"),
            ExpandedWord(1, "House"),
            ExpandedWord(99, "orphan"),
        ]

        merged = merge_keywords(base, expanded)

        self.assertEqual(merged[0].keywords, ("house", "family", "garden", "House"))
        self.assertEqual(merged[1].keywords, ("ship", "wave"))
        self.assertEqual([t.id for t in merged], [1, 2])

    def test_inputs_are_not_mutated(self):
        base = [TopicKeywords(id=1, name="Home", keywords=["house"])]

        merge_keywords(base, [ExpandedWord(1, "garden")])

        self.assertEqual(base[0].keywords, ("house",))

    def test_prepare_topic_keywords_names_topics(self):
        rows = [
            ["Topic", "Word 1", "Word 2", "Word 3"],
            ["home", "family", "", "home"],
            ["sea", "ship", "wave", ""],
        ]
        labels = [TopicLabel("Topic 1", "Domestic Life")]

        topics = prepare_topic_keywords(rows, labels)

        self.assertEqual([(t.id, t.name) for t in topics], [(1, "Domestic Life"), (2, "Topic 2")])
        self.assertEqual(topics[0].keywords, ("home", "family"))
        self.assertEqual(topics[1].keywords, ("sea", "ship", "wave"))

    def test_topic_name_requires_exact_label(self):
        labels = [TopicLabel("Topic_1", "Wrong separator"), TopicLabel("Topic 2", "Sea")]

        self.assertEqual(topic_name(labels, 1), "Topic 1")
        self.assertEqual(topic_name(labels, 2), "Sea")


class TopicPrevalenceTests(unittest.TestCase):
    def test_mean_weight_and_dominant_counts(self):
        docs = [
            make_doc(dominant="Topic_2", t1=0.2, t2=0.8),
            make_doc(dominant="Topic 2", t2=1.0),
            make_doc(dominant="Topic_1", t1=1.0),
            make_doc(dominant=None, t3=1.0),
        ]
        labels = [TopicLabel("Topic 2", "Sea")]

        prevalence = compute_topic_prevalence(docs, labels, False)

        self.assertEqual(len(prevalence), TOPIC_COUNT)
        first, second, third = prevalence[:3]
        self.assertAlmostEqual(first.mean_weight, 0.3)
        self.assertAlmostEqual(second.mean_weight, 0.45)
        self.assertEqual(second.name, "Sea")
        self.assertEqual(first.name, "Topic 1")
        self.assertEqual((first.dominant_count, second.dominant_count, third.dominant_count), (1, 2, 0))

    def test_empty_corpus(self):
        prevalence = compute_topic_prevalence([], [], False)

        self.assertTrue(all(p.mean_weight == 0.0 and p.dominant_count == 0 for p in prevalence))


if __name__ == "__main__":
    unittest.main()
