from __future__ import annotations

import unittest
from pathlib import Path

from streamlit.testing.v1 import AppTest

APP = str(Path(__file__).resolve().parent.parent / "streamlit_app.py")


class TestStreamlitApp(unittest.TestCase):
    def _text_input(self, at: AppTest, label: str):
        return next(t for t in at.text_input if t.label == label)

    def test_bad_timezone_is_reported(self) -> None:
        at = AppTest.from_file(APP, default_timeout=60).run()
        self._text_input(at, "时区（IANA）").input("Mars/Olympus_Mons").run()
        self.assertFalse(at.exception)
        self.assertTrue(any("无效时区" in e.value for e in at.error))

    def test_missing_path_is_reported(self) -> None:
        at = AppTest.from_file(APP, default_timeout=60).run()
        self._text_input(at, "GPX/TCX 文件或目录").input("/nonexistent/tracks").run()
        self.assertFalse(at.exception)
        self.assertTrue(any("找不到路径" in e.value for e in at.error))


if __name__ == "__main__":
    unittest.main()
