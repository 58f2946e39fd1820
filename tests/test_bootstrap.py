import shutil
import unittest
from uuid import uuid4

from prep_buddy.app_config import RuntimeEnv, parse_app_config
from prep_buddy.bootstrap import bootstrap_runtime, open_key_value_store
from prep_buddy.memory import SessionPhase
from tests.memory.base import PROJECT_ROOT, ScriptedClient


class BootstrapRuntimeTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"bootstrap-{uuid4().hex}"
        self._env = RuntimeEnv(provider_api_key="test-key", provider_env_var="ANTHROPIC_API_KEY")

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def _config(self, **overrides):
        raw = {"StoragePath": str(self._tmp_dir / "storage.db"), "LogConsumers": []}
        raw.update(overrides)
        return parse_app_config(raw)

    def test_runtime_is_hydrated_with_welcome(self) -> None:
        app = self._config(WelcomeMessage="Welcome to prep!")
        runtime = bootstrap_runtime(app, self._env, client=ScriptedClient([]))
        try:
            session = runtime.session
            self.assertEqual(SessionPhase.HYDRATED, session.phase)
            self.assertTrue(session.storage_available)
            self.assertEqual(["Welcome to prep!"], [m.text for m in session.messages])
            self.assertEqual([], runtime.log_descriptions)
        finally:
            runtime.close()

    def test_history_survives_restart(self) -> None:
        app = self._config()
        first = bootstrap_runtime(app, self._env, client=ScriptedClient([]))
        welcome_id = first.session.messages[0].id
        first.close()

        second = bootstrap_runtime(app, self._env, client=ScriptedClient([]))
        try:
            self.assertEqual([welcome_id], [m.id for m in second.session.messages])
        finally:
            second.close()

    def test_disabled_storage_runs_in_memory(self) -> None:
        app = self._config(StorageEnabled=False)
        self.assertIsNone(open_key_value_store(app))
        runtime = bootstrap_runtime(app, self._env, client=ScriptedClient([]))
        self.assertFalse(runtime.session.storage_available)
        self.assertEqual(1, len(runtime.session.messages))
        self.assertFalse(self._tmp_dir.exists())

    def test_unknown_prompt_variant_fails_fast(self) -> None:
        with self.assertRaises(ValueError):
            bootstrap_runtime(self._config(PromptVariant="verbose"), self._env, client=ScriptedClient([]))

    def test_unknown_provider_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            bootstrap_runtime(self._config(Provider="mystery"), self._env)


if __name__ == "__main__":
    unittest.main()
