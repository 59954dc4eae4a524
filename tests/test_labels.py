import tempfile
import unittest
from pathlib import Path

from yolo_overlay.labels import load_labels


class TestLoadLabels(unittest.TestCase):
    def _write(self, name: str, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_plain_text_skips_blank_lines(self) -> None:
        path = self._write("classes.txt", "person\n\n  bicycle  \n\t\ncar\n")
        self.assertEqual(load_labels(path), ["person", "bicycle", "car"])

    def test_yaml_names_mapping(self) -> None:
        path = self._write(
            "metadata.yaml",
            "# exported by the trainer\nstride: 32\nnames:\n  0: person\n  1: 'bicycle'\n  3: \"truck\"\n",
        )
        self.assertEqual(load_labels(path), ["person", "bicycle", "Unknown", "truck"])

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_labels(Path(tempfile.gettempdir()) / "does-not-exist-labels.txt")

    def test_empty_file_rejected(self) -> None:
        path = self._write("classes.txt", "\n   \n")
        with self.assertRaises(ValueError):
            load_labels(path)


if __name__ == "__main__":
    unittest.main()
