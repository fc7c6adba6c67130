from pathlib import Path
import json
import tempfile
import unittest
import uuid
from unittest import mock

from focuser.app.controller import AppController
import focuser.state.shield_state as shield_state
import focuser.system.network as network
from focuser.config import app_config
from focuser.config.blocklist_store import BlocklistReader, BlocklistStore
from focuser.errors import AuthorizationError
from focuser.extension.rule_compiler import compile_document
from focuser.main import build_app
from focuser.storage.shared_defaults import SharedDefaults
from focuser.sync.sync_trigger import ReloadResult


def _trigger(result: ReloadResult) -> mock.Mock:
    trigger = mock.Mock()
    trigger.reload.side_effect = lambda callback: callback(result)
    return trigger


class TestAppController(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.defaults = SharedDefaults(Path(self._tmp.name))
        self.store = BlocklistStore(self.defaults)
        self.logs = []
        self.shield = mock.Mock()
        self.shield.is_active = False

    def tearDown(self):
        self._tmp.cleanup()

    def _controller(self, result=ReloadResult(True)) -> AppController:
        self.trigger = _trigger(result)
        return AppController(self.logs.append, self.store, self.trigger, self.shield)

    def test_add_site_persists_and_reloads_once(self):
        controller = self._controller()
        result = controller.add_site("https://www.Foo.com/")

        self.assertTrue(result.added)
        self.assertEqual([s.domain for s in BlocklistReader(self.defaults).load()], ["foo.com"])
        self.trigger.reload.assert_called_once()
        self.assertIn("[SITI] Aggiunto dominio bloccato: foo.com", self.logs)
        self.assertTrue(any(msg.startswith("[SYNC] Sito aggiunto!") for msg in self.logs))

    def test_add_duplicate_does_not_reload(self):
        controller = self._controller()
        controller.add_site("foo.com")
        controller.add_site("FOO.com")

        self.trigger.reload.assert_called_once()
        self.assertIn("[SITI] Dominio gia' presente: foo.com", self.logs)

    def test_add_empty_is_reported(self):
        controller = self._controller()
        controller.add_site("   ")

        self.trigger.reload.assert_not_called()
        self.assertIn("[SITI] Dominio non valido", self.logs)

    def test_reload_failure_keeps_persisted_list(self):
        controller = self._controller(ReloadResult(False, "extension disabled"))
        controller.add_site("foo.com")

        self.assertEqual(self.store.domains(), ["foo.com"])
        self.assertEqual(len(BlocklistReader(self.defaults).load()), 1)
        self.assertIn(
            "[SYNC] Sito aggiunto ma il reload del blocker e' fallito: extension disabled",
            self.logs,
        )

    def test_remove_sites_batch_single_reload(self):
        controller = self._controller()
        ids = [self.store.add(d).site.id for d in ("a.com", "b.com", "c.com")]

        sites = controller.remove_sites(ids[:2] + [uuid.uuid4()])

        self.assertEqual([s.domain for s in sites], ["c.com"])
        self.trigger.reload.assert_called_once()
        self.assertIn("[SITI] Rimosso dominio bloccato: a.com", self.logs)
        self.assertIn("[SITI] Rimosso dominio bloccato: b.com", self.logs)

    def test_change_updates_active_shield(self):
        self.shield.is_active = True
        controller = self._controller()
        controller.add_site("foo.com")

        self.shield.apply_domain_shield.assert_called_once_with(["foo.com"])

    def test_enable_shield_denied_falls_back(self):
        self.shield.request_authorization.side_effect = AuthorizationError("negato")
        controller = self._controller()

        self.assertFalse(controller.enable_shield())
        self.shield.apply_domain_shield.assert_not_called()
        self.assertTrue(any("solo il content blocker" in msg for msg in self.logs))

    def test_enable_shield_applies_current_domains(self):
        self.store.add("foo.com")
        controller = self._controller()

        self.assertTrue(controller.enable_shield())
        self.shield.apply_domain_shield.assert_called_once_with(["foo.com"])
        self.assertIn("[SHIELD] Shield ATTIVO", self.logs)

    def test_enable_shield_start_failure_is_logged(self):
        self.shield.apply_domain_shield.side_effect = RuntimeError("no iface")
        controller = self._controller()

        self.assertFalse(controller.enable_shield())
        self.assertIn("[ERRORE] Avvio fallito: no iface", self.logs)

    def test_disable_shield_when_not_running(self):
        controller = self._controller()
        controller.disable_shield()

        self.shield.clear_shield.assert_not_called()
        self.assertIn("[SHIELD] Shield gia' fermo", self.logs)

    def test_record_resist(self):
        statistics = mock.Mock()
        statistics.statistics.total_resists = 3
        controller = AppController(self.logs.append, self.store, _trigger(ReloadResult(True)),
                                   self.shield, statistics)

        controller.record_resist()

        statistics.record_resist.assert_called_once()
        self.assertIn("[STATS] Resistenze totali: 3", self.logs)


class TestBuildApp(unittest.TestCase):
    def test_end_to_end_reload_writes_rule_document(self):
        with tempfile.TemporaryDirectory() as tmp:
            group_dir = Path(tmp)
            with mock.patch("focuser.system.privileges.is_admin", return_value=False):
                controller = build_app(lambda msg: None, group_dir)

            self.assertEqual(len(controller.store.sites), 20)

            controller.store.add("foo.com")
            result = controller.sync_trigger.reload_sync()

            self.assertTrue(result.success)
            document = group_dir / "ContentBlocker" / "blockerList.json"
            self.assertEqual(document.read_bytes(), compile_document(controller.store.domains()))
            rules = json.loads(document.read_bytes())
            self.assertEqual(rules[-1]["trigger"]["url-filter"], ".*foo\\.com.*")
            self.assertEqual(
                controller.sync_trigger.host.active_document(app_config.EXTENSION_IDENTIFIER),
                document,
            )

    def test_reload_verifies_written_document(self):
        with tempfile.TemporaryDirectory() as tmp:
            group_dir = Path(tmp)
            with mock.patch("focuser.system.privileges.is_admin", return_value=False):
                controller = build_app(lambda msg: None, group_dir)
            controller.store.add("foo.com")

            with mock.patch("focuser.main.verify_rule_document", return_value=True) as verify:
                result = controller.sync_trigger.reload_sync()

            self.assertTrue(result.success)
            document = group_dir / "ContentBlocker" / "blockerList.json"
            verify.assert_called_once_with(controller.store.domains(), document)

    def test_shield_state_stays_in_group_directory(self):
        with tempfile.TemporaryDirectory() as tmp, tempfile.TemporaryDirectory() as other:
            group_dir = Path(tmp)
            elsewhere = Path(other)
            with (
                mock.patch("focuser.system.privileges.is_admin", return_value=True),
                mock.patch("focuser.shield.shield_manager.start_dns_server"),
            ):
                controller = build_app(lambda msg: None, group_dir)

            with (
                mock.patch.object(shield_state, "STATE_FILE", elsewhere / "shield_state.json"),
                mock.patch.object(network, "STATE_PATH", elsewhere / "dns_state.json"),
                mock.patch.object(network, "get_active_interface", return_value="Wi-Fi"),
                mock.patch.object(network, "get_current_dns", return_value=["1.1.1.1"]),
                mock.patch.object(network, "_run"),
            ):
                self.assertTrue(controller.enable_shield())
                self.assertTrue(controller.shield.load_persisted_state())
                self.assertTrue(shield_state.load_state(group_dir / "shield_state.json"))
                dns_state = json.loads((group_dir / "dns_state.json").read_text())
                self.assertEqual(dns_state, {"interface": "Wi-Fi", "dns": ["1.1.1.1"]})

                controller.disable_shield()
                self.assertFalse(shield_state.load_state(group_dir / "shield_state.json"))

            self.assertEqual(list(elsewhere.iterdir()), [])


if __name__ == "__main__":
    unittest.main()
