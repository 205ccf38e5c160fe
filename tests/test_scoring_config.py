import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config.scoring import get_scoring_config, get_scoring_value, reset_scoring_config_cache


class ScoringConfigTests(unittest.TestCase):
    def tearDown(self):
        reset_scoring_config_cache()

    def test_loader_and_value_lookup(self):
        config = get_scoring_config()
        self.assertIsInstance(config, dict)
        self.assertEqual(get_scoring_value("matching.weights.experience_overlap"), 0.45)
        self.assertEqual(get_scoring_value("curation.game.thresholds"), [0.75, 0.70, 0.65, 0.60])
        self.assertEqual(get_scoring_value("link_verification.min_job_id_length"), 6)

    def test_missing_paths_return_default(self):
        self.assertIsNone(get_scoring_value("matching.weights.unknown"))
        self.assertEqual(get_scoring_value("matching.floor.nested", 3), 3)
        self.assertEqual(get_scoring_value("", "fallback"), "fallback")

    def test_path_override(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scoring.yaml"
            path.write_text("matching:\n  floor: 0.2\n", encoding="utf-8")
            reset_scoring_config_cache()
            with patch.dict(os.environ, {"SCORING_CONFIG_PATH": str(path)}):
                self.assertEqual(get_scoring_value("matching.floor"), 0.2)

    def test_non_mapping_config_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scoring.yaml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            reset_scoring_config_cache()
            with patch.dict(os.environ, {"SCORING_CONFIG_PATH": str(path)}):
                with self.assertRaises(RuntimeError):
                    get_scoring_config()


if __name__ == "__main__":
    unittest.main()
