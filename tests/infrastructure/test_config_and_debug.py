import logging
import os
import subprocess
import sys
import unittest
from unittest import mock

import numpy as np

from tapegrad import EngineConfig, Session
from tapegrad.infrastructure import _debug


class TestEngineConfig(unittest.TestCase):
    def test_defaults(self):
        cfg = EngineConfig()
        self.assertEqual(cfg.dtype, np.float64)
        self.assertTrue(cfg.check_finite)

    def test_rejects_non_floating_dtype(self):
        with self.assertRaises(TypeError):
            EngineConfig(dtype=np.int32)

    def test_is_frozen(self):
        cfg = EngineConfig()
        with self.assertRaises(Exception):
            cfg.check_finite = False  # type: ignore[misc]

    def test_from_env(self):
        env = {"TAPEGRAD_DTYPE": "float32", "TAPEGRAD_CHECK_FINITE": "0"}
        with mock.patch.dict(os.environ, env):
            cfg = EngineConfig.from_env()
        self.assertEqual(cfg.dtype, np.float32)
        self.assertFalse(cfg.check_finite)

    def test_from_env_check_finite_is_case_insensitive(self):
        for raw in ("False", "FALSE", " off ", "No"):
            with self.subTest(value=raw):
                with mock.patch.dict(os.environ, {"TAPEGRAD_CHECK_FINITE": raw}):
                    self.assertFalse(EngineConfig.from_env().check_finite)
        with mock.patch.dict(os.environ, {"TAPEGRAD_CHECK_FINITE": "True"}):
            self.assertTrue(EngineConfig.from_env().check_finite)

    def test_from_env_rejects_unknown_dtype(self):
        with mock.patch.dict(os.environ, {"TAPEGRAD_DTYPE": "float16x"}):
            with self.assertRaises(ValueError):
                EngineConfig.from_env()

    def test_float32_session(self):
        sess = Session(EngineConfig(dtype=np.float32))
        x = sess.new_variable([1.0, 2.0], requires_grad=True)
        y = sess.apply("sum", [sess.apply("square", [x])])
        grads = sess.backward(y)
        self.assertEqual(sess.value_of(y).dtype, np.float32)
        self.assertEqual(grads.gradient_of(x).dtype, np.float32)


class TestDebugLogging(unittest.TestCase):
    def setUp(self):
        self.root = logging.getLogger("tapegrad")
        self.saved_handlers = list(self.root.handlers)
        self.saved_level = self.root.level
        self.saved_flag = _debug.is_enabled()
        self.root.handlers[:] = []

    def tearDown(self):
        self.root.handlers[:] = self.saved_handlers
        self.root.setLevel(self.saved_level)
        _debug._ENABLED = self.saved_flag

    def test_enable_installs_one_handler(self):
        _debug.enable(True)
        _debug.enable(True)
        self.assertTrue(_debug.is_enabled())
        streams = [h for h in self.root.handlers if isinstance(h, logging.StreamHandler)]
        self.assertEqual(len(streams), 1)
        self.assertEqual(self.root.level, logging.DEBUG)

    def test_disable_raises_level(self):
        _debug.enable(True)
        _debug.enable(False)
        self.assertFalse(_debug.is_enabled())
        self.assertEqual(self.root.level, logging.WARNING)

    def test_dbg_namespaces_loggers(self):
        self.assertEqual(_debug.dbg("tape").name, "tapegrad.tape")

    def test_env_flag_parses_leniently(self):
        for raw, expected in [
            ("1", True),
            ("true", True),
            (" YES ", True),
            ("On", True),
            ("0", False),
            ("false", False),
            ("", False),
            ("maybe", False),
        ]:
            with self.subTest(value=raw):
                with mock.patch.dict(os.environ, {"TAPEGRAD_DEBUG": raw}):
                    self.assertEqual(_debug.env_flag("TAPEGRAD_DEBUG"), expected)

    def test_import_survives_non_integer_debug_flag(self):
        import tapegrad

        src_root = os.path.dirname(os.path.dirname(os.path.abspath(tapegrad.__file__)))
        env = dict(os.environ)
        env["TAPEGRAD_DEBUG"] = "true"
        env["PYTHONPATH"] = os.pathsep.join(
            p for p in (src_root, env.get("PYTHONPATH")) if p
        )
        proc = subprocess.run(
            [
                sys.executable,
                "-c",
                "import tapegrad.infrastructure._debug as d; print(d.is_enabled())",
            ],
            env=env,
            capture_output=True,
            text=True,
        )
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(proc.stdout.strip(), "True")


if __name__ == "__main__":
    unittest.main()
