from datetime import datetime, timedelta, timezone
from pathlib import Path
import json
import tempfile
import unittest
from unittest import mock

from focuser.config.app_config import BLOCKED_SITES_KEY, USER_SETTINGS_KEY, USER_STATISTICS_KEY
from focuser.config.blocklist_store import BlocklistStore
from focuser.diagnostics import storage_report, verify_rule_document
from focuser.extension.rule_compiler import compile_document
from focuser.state.settings_store import (
    FocusLevel,
    ResistanceRate,
    SettingsManager,
    UrgeFrequency,
    UserSettings,
    estimate_recovery_days,
)
from focuser.state.statistics_store import Statistics, StatisticsManager, achieved_milestones
from focuser.storage.shared_defaults import SharedDefaults

NOW = datetime(2025, 11, 22, 9, 0, tzinfo=timezone.utc)


class _TempStorageMixin:
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.group_dir = Path(self._tmp.name)
        self.defaults = SharedDefaults(self.group_dir)

    def tearDown(self):
        self._tmp.cleanup()


class TestRecoveryEstimate(unittest.TestCase):
    def test_default_settings(self):
        # 90 + (5-3)*5 + 3*3 - 3*2
        self.assertEqual(estimate_recovery_days(UserSettings(), NOW), 103)

    def test_first_watch_bonus_is_capped(self):
        settings = UserSettings(first_watch_date=NOW - timedelta(days=365 * 12))
        self.assertEqual(estimate_recovery_days(settings, NOW), 133)

        settings = UserSettings(first_watch_date=datetime(2022, 11, 23, tzinfo=timezone.utc))
        self.assertEqual(estimate_recovery_days(settings, NOW), 113)

    def test_clamped_to_one_year(self):
        settings = UserSettings(daily_watch_frequency=30)
        self.assertEqual(estimate_recovery_days(settings, NOW), 365)

    def test_scores(self):
        self.assertEqual(FocusLevel.VERY_LOW.score, 1)
        self.assertEqual(FocusLevel.EXCELLENT.score, 5)
        self.assertEqual(UrgeFrequency.VERY_FREQUENT.score, 5)
        self.assertEqual(ResistanceRate.NEVER.score, 0)
        self.assertEqual(ResistanceRate.ALMOST.score, 9)

    def test_low_risk_profile(self):
        settings = UserSettings(
            focus_level=FocusLevel.EXCELLENT,
            urge_frequency=UrgeFrequency.RARE,
            resistance_rate=ResistanceRate.ALMOST,
        )
        self.assertEqual(estimate_recovery_days(settings, NOW), 75)


class TestSettingsManager(_TempStorageMixin, unittest.TestCase):
    def test_defaults_when_missing(self):
        self.assertEqual(SettingsManager(self.defaults).settings, UserSettings())

    def test_complete_onboarding_persists(self):
        SettingsManager(self.defaults).complete_onboarding()
        self.assertTrue(SettingsManager(self.defaults).settings.has_completed_onboarding)

    def test_update_round_trip(self):
        settings = UserSettings(
            accountability_partner_email="friend@example.com",
            first_watch_date=datetime(2015, 6, 1, tzinfo=timezone.utc),
            daily_watch_frequency=4,
            focus_level=FocusLevel.LOW,
            urge_frequency=UrgeFrequency.FREQUENT,
            resistance_rate=ResistanceRate.RARELY,
            journey_start_date=NOW,
        )
        SettingsManager(self.defaults).update_settings(settings)

        self.assertEqual(SettingsManager(self.defaults).settings, settings)
        payload = json.loads(self.defaults.get_data(USER_SETTINGS_KEY))
        self.assertEqual(payload["focusLevel"], "Low - Hard to concentrate")

    def test_optional_fields_are_omitted(self):
        SettingsManager(self.defaults).update_settings(UserSettings())
        payload = json.loads(self.defaults.get_data(USER_SETTINGS_KEY))
        self.assertNotIn("firstWatchDate", payload)
        self.assertNotIn("accountabilityPartnerEmail", payload)

    def test_corrupt_settings_fall_back_to_defaults(self):
        self.defaults.set_data(USER_SETTINGS_KEY, b'{"focusLevel": "Unknown"}')
        self.assertEqual(SettingsManager(self.defaults).settings, UserSettings())


class TestStatistics(_TempStorageMixin, unittest.TestCase):
    def _manager(self, clock) -> StatisticsManager:
        return StatisticsManager(self.defaults, clock=clock)

    def test_record_resist_counts_per_day(self):
        manager = self._manager(lambda: NOW)
        manager.record_resist()
        manager.record_resist()

        stats = manager.statistics
        self.assertEqual(stats.total_resists, 2)
        self.assertEqual(stats.daily_check_ins, {"2025-11-22": 2})
        self.assertEqual(stats.last_check_in_date, NOW)

    def test_days_clean_never_negative(self):
        stats = Statistics(start_date=NOW)
        self.assertEqual(stats.days_clean(NOW - timedelta(days=3)), 0)
        self.assertEqual(stats.days_clean(NOW + timedelta(days=10, hours=5)), 10)

    def test_refresh_streak_is_monotonic(self):
        now = {"value": NOW}
        manager = self._manager(lambda: now["value"])

        now["value"] = NOW + timedelta(days=8)
        manager.refresh_streak()
        self.assertEqual(manager.statistics.longest_streak, 8)
        self.assertEqual(manager.streak_days, 8)

        manager.reset_statistics()
        manager.refresh_streak()
        self.assertEqual(manager.statistics.longest_streak, 0)

        stats = Statistics(start_date=NOW, longest_streak=30)
        self.assertFalse(stats.update_streak(NOW + timedelta(days=5)))
        self.assertEqual(stats.longest_streak, 30)

    def test_persisted_round_trip(self):
        manager = self._manager(lambda: NOW)
        manager.record_resist()

        reloaded = self._manager(lambda: NOW + timedelta(days=1))
        self.assertEqual(reloaded.statistics, manager.statistics)

    def test_corrupt_statistics_start_fresh(self):
        self.defaults.set_data(USER_STATISTICS_KEY, b"[]")
        manager = self._manager(lambda: NOW)

        self.assertEqual(manager.statistics.manual_resists, 0)
        self.assertEqual(manager.statistics.start_date, NOW)

    def test_milestones(self):
        self.assertEqual(achieved_milestones(0), [])
        self.assertEqual(achieved_milestones(7), ["First Day", "One Week Clean"])
        self.assertEqual(len(achieved_milestones(400)), 7)


class TestDiagnostics(_TempStorageMixin, unittest.TestCase):
    def test_report_without_data(self):
        report = storage_report(self.defaults)
        self.assertIn("✓ Storage condiviso accessibile", report)
        self.assertIn("✗ Nessuna lista siti trovata", report)

    def test_report_lists_first_sites(self):
        store = BlocklistStore(self.defaults)
        for i in range(12):
            store.add(f"site{i}.com")

        report = storage_report(self.defaults)

        self.assertIn("✓ Decodificati 12 siti", report)
        self.assertIn("- site9.com", report)
        self.assertNotIn("- site10.com", report)
        self.assertIn("... e altri 2", report)

    def test_report_decode_failure(self):
        self.defaults.set_data(BLOCKED_SITES_KEY, b"garbage")
        self.assertIn("✗ Decodifica fallita", storage_report(self.defaults))

    def test_report_storage_not_accessible(self):
        with mock.patch.object(self.defaults, "is_accessible", return_value=False):
            self.assertIn("NON accessibile", storage_report(self.defaults))

    def test_verify_rule_document(self):
        path = self.group_dir / "blockerList.json"
        path.write_bytes(compile_document(["a.com", "b.com"]))

        self.assertTrue(verify_rule_document(["a.com", "b.com"], path))
        self.assertFalse(verify_rule_document(["b.com", "a.com"], path))
        self.assertFalse(verify_rule_document(["a.com"], self.group_dir / "missing.json"))


if __name__ == "__main__":
    unittest.main()
