import os
import unittest
from unittest.mock import patch

from transcript_backend import config


class ConfigTests(unittest.TestCase):
    def test_port_falls_back_when_env_is_not_an_integer(self) -> None:
        with patch.dict(os.environ, {"TRANSCRIPT_VIEWER_PORT": "not-a-port"}):
            self.assertEqual(config._env_int("TRANSCRIPT_VIEWER_PORT", 3001), 3001)
        with patch.dict(os.environ, {"TRANSCRIPT_VIEWER_PORT": "8080"}):
            self.assertEqual(config._env_int("TRANSCRIPT_VIEWER_PORT", 3001), 8080)

    def test_prefixes_are_normalized_to_one_trailing_slash(self) -> None:
        with patch.dict(os.environ, {"S3_KEY_PREFIX": "/team/claude/ "}):
            self.assertEqual(config._env_prefix("S3_KEY_PREFIX"), "team/claude/")
        with patch.dict(os.environ, {"S3_KEY_PREFIX": ""}):
            self.assertEqual(config._env_prefix("S3_KEY_PREFIX"), "")
        self.assertEqual(config._env_prefix("TRANSCRIPT_VIEWER_UNSET_PREFIX", "transcripts"), "transcripts/")

    def test_bool_flags_accept_common_spellings(self) -> None:
        with patch.dict(os.environ, {"S3_FORCE_PATH_STYLE": "off"}):
            self.assertFalse(config._env_bool("S3_FORCE_PATH_STYLE", True))
        with patch.dict(os.environ, {"S3_FORCE_PATH_STYLE": "Yes"}):
            self.assertTrue(config._env_bool("S3_FORCE_PATH_STYLE", False))


if __name__ == "__main__":
    unittest.main()
