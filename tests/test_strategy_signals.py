import unittest

from services.strategy_signals import classify, is_entry_candidate, is_exit_short_candidate


class TestStrategySignals(unittest.TestCase):
    def test_first_entry_day_is_entry(self):
        metric = {"entry_exit_type": "entry", "entry_exit_day": 1, "explosion_index": 250, "otc_index": 900}
        self.assertTrue(is_entry_candidate(metric))
        self.assertFalse(is_exit_short_candidate(metric))

    def test_first_exit_day_is_exit_short(self):
        metric = {"entry_exit_type": "exit", "entry_exit_day": 1, "explosion_index": 250, "otc_index": 900}
        self.assertTrue(is_exit_short_candidate(metric))
        self.assertFalse(is_entry_candidate(metric))

    def test_explosion_flip_to_positive_is_entry(self):
        metric = {"entry_exit_type": "neutral", "entry_exit_day": 0, "explosion_index": 220}
        self.assertFalse(is_entry_candidate(metric))
        self.assertTrue(is_entry_candidate(metric, previous_explosion=-30))

    def test_every_entry_day_is_entry(self):
        for day, otc in ((1, 900), (26, 900), (26, 1200)):
            metric = {"entry_exit_type": "entry", "entry_exit_day": day, "explosion_index": 250, "otc_index": otc}
            self.assertTrue(is_entry_candidate(metric), (day, otc))

    def test_negative_explosion_staying_negative_is_not_entry(self):
        metric = {"entry_exit_type": "exit", "entry_exit_day": 4, "explosion_index": -10}
        self.assertFalse(is_entry_candidate(metric, previous_explosion=-30))

    def test_late_entry_above_otc_line_is_exit_short(self):
        metric = {"entry_exit_type": "entry", "entry_exit_day": 12, "explosion_index": 300, "otc_index": 1200}
        self.assertTrue(is_exit_short_candidate(metric))

    def test_classify_flags_explosion_risk(self):
        metric = {"entry_exit_type": "exit", "entry_exit_day": 9, "explosion_index": 126, "otc_index": 1038}
        self.assertEqual(classify(metric), ["exit_short", "explosion_risk"])

    def test_empty_metric(self):
        self.assertFalse(is_entry_candidate({}))
        self.assertEqual(classify({}), [])


if __name__ == "__main__":
    unittest.main()
