"""
core/tests/test_config_service.py

Unit tests for the layered ConfigService: embedded defaults, environment
overlays and user ini overrides.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from approvals.models.workflow_config import WorkflowConfig
from core.config.config_service import ConfigService
from signature.models.signature_config import SignatureConfig


class TestConfigService(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.user_ini = Path(self._tmp.name) / "config.ini"
        # keep the developer's own environment out of the merge
        clean = {k: v for k, v in os.environ.items() if not k.startswith("APPROVALFLOW_")}
        self._env = mock.patch.dict(os.environ, clean, clear=True)
        self._env.start()

    def tearDown(self) -> None:
        self._env.stop()
        self._tmp.cleanup()

    def test_embedded_defaults(self) -> None:
        cfg = ConfigService(user_ini=self.user_ini)
        self.assertEqual(cfg.workflow.timeout_days, 0)
        self.assertEqual(cfg.workflow.date_format, "%b %d, %y %I:%M %p")
        self.assertEqual(cfg.signature.capture_width, 560)
        self.assertIsInstance(cfg.database.approvals, Path)
        self.assertEqual(cfg.meta_source("Workflow", "timeout_days")["layer"], "code")

    def test_environment_overlay(self) -> None:
        os.environ["APPROVALFLOW_WORKFLOW__TIMEOUT_DAYS"] = "14"
        os.environ["APPROVALFLOW_STORAGE__ARTIFACT_ROOT"] = self._tmp.name
        cfg = ConfigService(user_ini=self.user_ini)
        self.assertEqual(cfg.workflow.timeout_days, 14)
        self.assertEqual(cfg.storage.artifact_root, Path(self._tmp.name))
        self.assertEqual(cfg.meta_source("Workflow", "timeout_days")["layer"], "env")

    def test_user_ini_wins_and_keeps_percent_signs(self) -> None:
        os.environ["APPROVALFLOW_WORKFLOW__TIMEOUT_DAYS"] = "14"
        self.user_ini.write_text(
            "[Workflow]\ntimeout_days = 3\ndate_format = %Y-%m-%d %H:%M\n"
            "[Signature]\nstroke_max_width = 5.5\n",
            encoding="utf-8",
        )
        cfg = ConfigService(user_ini=self.user_ini)
        self.assertEqual(cfg.workflow.timeout_days, 3)
        self.assertEqual(cfg.workflow.date_format, "%Y-%m-%d %H:%M")
        self.assertAlmostEqual(cfg.signature.stroke_max_width, 5.5)
        self.assertEqual(cfg.get("Workflow", "timeout_days", cast=int), 3)
        self.assertIsNone(cfg.get("Workflow", "missing"))

    def test_reload_picks_up_changes(self) -> None:
        cfg = ConfigService(user_ini=self.user_ini)
        self.user_ini.write_text("[Workflow]\ntimeout_days = 9\n", encoding="utf-8")
        cfg.reload()
        self.assertEqual(cfg.workflow.timeout_days, 9)

    def test_feature_configs_read_from_service(self) -> None:
        os.environ["APPROVALFLOW_WORKFLOW__TIMEOUT_DAYS"] = "7"
        os.environ["APPROVALFLOW_SIGNATURE__MIN_BOX_WIDTH_PX"] = "55"
        cfg = ConfigService(user_ini=self.user_ini)

        wf = WorkflowConfig.from_config(cfg)
        self.assertEqual(wf.timeout_days, 7)
        self.assertEqual(wf.db_path, cfg.database.approvals)

        sig = SignatureConfig.from_config(cfg)
        self.assertEqual(sig.min_box_width_px, 55.0)
        self.assertEqual(sig.capture_height, 200)


if __name__ == "__main__":
    unittest.main()
