import unittest
import os
import sys

# Add the 'apps' directory to the path so the app packages import like they do under AppDaemon
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from battery_monitor.exceptions import ConfigError
from battery_monitor.tiers import ThresholdConfig, Tier, classify


class TestClassify(unittest.TestCase):

    def setUp(self):
        self.config = ThresholdConfig()

    def test_default_boundaries_belong_to_the_lower_tier(self):
        """Each threshold value itself is classified into the tier it tops."""
        self.assertEqual(classify(0, self.config), Tier.CRITICAL)
        self.assertEqual(classify(5, self.config), Tier.CRITICAL)
        self.assertEqual(classify(6, self.config), Tier.LOW)
        self.assertEqual(classify(25, self.config), Tier.LOW)
        self.assertEqual(classify(26, self.config), Tier.MEDIUM)
        self.assertEqual(classify(50, self.config), Tier.MEDIUM)
        self.assertEqual(classify(51, self.config), Tier.HIGH)
        self.assertEqual(classify(75, self.config), Tier.HIGH)
        self.assertEqual(classify(76, self.config), Tier.VERY_HIGH)
        self.assertEqual(classify(100, self.config), Tier.VERY_HIGH)

    def test_every_percent_matches_exactly_one_range(self):
        """No gaps and no overlaps between the five tier ranges."""
        configs = [ThresholdConfig(), ThresholdConfig(critical=1, low=6, medium=26, high=51),
                   ThresholdConfig(critical=24, low=49, medium=74, high=100)]
        for config in configs:
            predicates = {
                Tier.CRITICAL: lambda p: p <= config.critical,
                Tier.LOW: lambda p: config.critical < p <= config.low,
                Tier.MEDIUM: lambda p: config.low < p <= config.medium,
                Tier.HIGH: lambda p: config.medium < p <= config.high,
                Tier.VERY_HIGH: lambda p: p > config.high,
            }
            for percent in range(0, 101):
                with self.subTest(config=config, percent=percent):
                    matching = [tier for tier, pred in predicates.items() if pred(percent)]
                    self.assertEqual(matching, [classify(percent, config)])

    def test_tiers_are_ordered(self):
        self.assertLess(Tier.CRITICAL, Tier.LOW)
        self.assertLess(Tier.HIGH, Tier.VERY_HIGH)
        self.assertEqual(Tier.VERY_HIGH.key, "very_high")
        self.assertEqual(Tier.VERY_HIGH.display, "very high")
        self.assertIs(Tier.from_key("very_high"), Tier.VERY_HIGH)


class TestThresholdConfig(unittest.TestCase):

    def test_defaults_when_args_are_missing(self):
        config = ThresholdConfig.from_args({})
        self.assertEqual((config.critical, config.low, config.medium, config.high), (5, 25, 50, 75))

    def test_values_are_coerced_from_strings(self):
        config = ThresholdConfig.from_args({"high_threshold": "80", "medium_threshold": "60"})
        self.assertEqual(config.high, 80)
        self.assertEqual(config.medium, 60)

    def test_out_of_range_threshold_is_rejected(self):
        with self.assertRaises(ConfigError) as ctx:
            ThresholdConfig.from_args({"critical_threshold": 30})
        self.assertIn("critical_threshold", str(ctx.exception))

    def test_non_increasing_thresholds_are_rejected(self):
        """Values inside their input ranges can still be inverted."""
        with self.assertRaises(ConfigError) as ctx:
            ThresholdConfig.from_args({"high_threshold": 60, "medium_threshold": 70})
        self.assertIn("strictly increasing", str(ctx.exception))

    def test_equal_thresholds_are_rejected(self):
        with self.assertRaises(ConfigError):
            ThresholdConfig(critical=10, low=30, medium=60, high=60)

    def test_ranges(self):
        config = ThresholdConfig()
        self.assertEqual(config.range_for(Tier.CRITICAL), "≤5%")
        self.assertEqual(config.range_for(Tier.LOW), "6-25%")
        self.assertEqual(config.range_for(Tier.MEDIUM), "26-50%")
        self.assertEqual(config.range_for(Tier.HIGH), "51-75%")
        self.assertEqual(config.range_for(Tier.VERY_HIGH), ">75%")


if __name__ == '__main__':
    unittest.main()
