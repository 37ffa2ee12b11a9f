import unittest

from literary_topics.models import (
    DecadeAggregate,
    DocumentRecord,
    TopicKeywords,
    YearAggregate,
    empty_distribution,
    parse_topic_number,
    topic_key,
    topic_label,
)


class TopicNumberTests(unittest.TestCase):
    def test_identifiers(self):
        self.assertEqual(parse_topic_number("Topic_7"), 7)
        self.assertEqual(parse_topic_number("Topic 13"), 13)
        self.assertEqual(parse_topic_number(" 4 "), 4)
        self.assertEqual(parse_topic_number(2), 2)
        self.assertEqual(parse_topic_number(5.0), 5)
        self.assertEqual(parse_topic_number("12 (misc)"), 12)

    def test_unusable_values(self):
        for value in (None, True, "", "Topic", 0, "Topic_0", 2.5, -3, "-3", "+0"):
            with self.subTest(value=value):
                self.assertIsNone(parse_topic_number(value))

    def test_keys(self):
        self.assertEqual(topic_key(3), "Topic_3")
        self.assertEqual(topic_label(3), "Topic 3")
        self.assertEqual(len(empty_distribution()), 13)


class RecordTests(unittest.TestCase):
    def test_raw_total_ignores_missing_weights(self):
        doc = DocumentRecord("A", 1950, None, None, (0.5, None, 0.25) + (None,) * 10)
        self.assertEqual(doc.raw_total(), 0.75)

    def test_top_topics(self):
        dist = empty_distribution()
        dist.update({"Topic_2": 0.5, "Topic_5": 0.3, "Topic_9": 0.15, "Topic_1": 0.05})
        decade = DecadeAggregate(1900, 2, dist, "Topic_2")

        self.assertEqual(
            decade.top_topics(),
            [("Topic_2", 0.5), ("Topic_5", 0.3), ("Topic_9", 0.15)],
        )
        self.assertEqual(decade.top_topics(1), [("Topic_2", 0.5)])

    def test_derived_values_are_read_only(self):
        source = empty_distribution()
        year = YearAggregate(1950, 1, source)
        topic = TopicKeywords(1, "Home", ["house"])

        with self.assertRaises(TypeError):
            year.mean_distribution["Topic_1"] = 1.0
        source["Topic_1"] = 1.0

        self.assertEqual(year.mean_distribution["Topic_1"], 0.0)
        self.assertEqual(year, YearAggregate(1950, 1, empty_distribution()))
        self.assertEqual(topic.keywords, ("house",))


if __name__ == "__main__":
    unittest.main()
