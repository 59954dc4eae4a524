import unittest

import numpy as np

from fakes import LABELS, direct_tensor
from yolo_overlay.decoder import DecoderConfig, OutputDecoder, decode
from yolo_overlay.outputs import DirectOutput, GridOutput, UnsupportedOutput, classify_output
from yolo_overlay.types import UNKNOWN_LABEL


class TestClassifyOutput(unittest.TestCase):
    def test_rank3_is_direct(self) -> None:
        out = classify_output(np.zeros((1, 4, 8), dtype=np.float32))
        self.assertIsInstance(out, DirectOutput)
        self.assertEqual(out.rows.shape, (4, 8))
        self.assertEqual(out.num_classes, 3)

    def test_rank4_is_grid(self) -> None:
        self.assertIsInstance(classify_output(np.zeros((1, 3, 2, 5))), GridOutput)

    def test_other_ranks_unsupported(self) -> None:
        for shape in [(8,), (4, 8), (1, 1, 1, 1, 1)]:
            out = classify_output(np.zeros(shape))
            self.assertIsInstance(out, UnsupportedOutput)
            self.assertEqual(out.shape, shape)

    def test_batch_larger_than_one_unsupported(self) -> None:
        self.assertIsInstance(classify_output(np.zeros((2, 4, 8))), UnsupportedOutput)

    def test_rows_too_short_unsupported(self) -> None:
        self.assertIsInstance(classify_output(np.zeros((1, 4, 4))), UnsupportedOutput)

    def test_non_numeric_unsupported(self) -> None:
        out = classify_output(np.full((1, 2, 8), "x"))
        self.assertIsInstance(out, UnsupportedOutput)
        self.assertEqual(out.shape, (1, 2, 8))
        self.assertEqual(decode(np.full((1, 2, 8), "x"), 320, 320, LABELS), [])


class TestDecodeDirect(unittest.TestCase):
    def test_objectness_times_class_score(self) -> None:
        # 2 boxes, 3 classes
        raw = direct_tensor(
            [
                [0.50, 0.60, 0.10, 0.20, 0.5, 0.1, 0.9, 0.2],  # class 1 (0.45)
                [0.20, 0.30, 0.12, 0.18, 0.8, 0.7, 0.1, 0.2],  # class 0 (0.56)
            ]
        )
        out = decode(raw, 320, 320, LABELS)
        self.assertEqual(len(out), 2)
        by_class = {d.class_id: d for d in out}
        self.assertAlmostEqual(by_class[1].confidence, 0.45, places=5)
        self.assertEqual(by_class[1].class_name, "bicycle")
        self.assertAlmostEqual(by_class[0].confidence, 0.56, places=5)
        self.assertEqual(by_class[0].class_name, "person")
        self.assertAlmostEqual(by_class[0].x, 0.2, places=5)
        self.assertAlmostEqual(by_class[0].height, 0.18, places=5)

    def test_threshold_boundary_is_inclusive(self) -> None:
        kept = decode([[[0.5, 0.5, 0.2, 0.2, 0.5, 0.5, 0.1, 0.1]]], 320, 320, LABELS)
        self.assertEqual(len(kept), 1)
        self.assertEqual(kept[0].confidence, 0.25)

        dropped = decode([[[0.5, 0.5, 0.2, 0.2, 1.0, 0.2499, 0.1, 0.1]]], 320, 320, LABELS)
        self.assertEqual(dropped, [])

    def test_low_objectness_rejected_before_class_scan(self) -> None:
        out = decode([[[0.5, 0.5, 0.2, 0.2, 0.2, 1.0, 1.0, 1.0]]], 320, 320, LABELS)
        self.assertEqual(out, [])

    def test_objectness_passes_but_combined_score_fails(self) -> None:
        out = decode([[[0.5, 0.5, 0.2, 0.2, 0.4, 0.5, 0.1, 0.1]]], 320, 320, LABELS)
        self.assertEqual(out, [])

    def test_argmax_tie_picks_lowest_index(self) -> None:
        out = decode([[[0.5, 0.5, 0.2, 0.2, 1.0, 0.5, 0.5, 0.3]]], 320, 320, LABELS)
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].class_id, 0)

    def test_out_of_range_class_is_unknown(self) -> None:
        row = [0.5, 0.5, 0.2, 0.2, 0.9] + [0.0] * 100
        row[5 + 99] = 0.9
        out = decode([[row]], 320, 320, LABELS)
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].class_id, 99)
        self.assertEqual(out[0].class_name, UNKNOWN_LABEL)

    def test_near_duplicates_collapse_to_one(self) -> None:
        raw = direct_tensor(
            [
                [0.5, 0.5, 0.2, 0.2, 0.9, 0.9, 0.1],
                [0.52, 0.52, 0.2, 0.2, 0.85, 0.9, 0.1],
            ]
        )
        out = decode(raw, 640, 640, ["person", "car"])
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].class_id, 0)
        self.assertEqual(out[0].class_name, "person")
        self.assertAlmostEqual(out[0].confidence, 0.81, places=5)
        self.assertAlmostEqual(out[0].x, 0.5, places=5)

    def test_rows_without_class_scores_yield_nothing(self) -> None:
        self.assertEqual(decode([[[0.5, 0.5, 0.2, 0.2, 0.9]]], 320, 320, LABELS), [])

    def test_no_rows(self) -> None:
        self.assertEqual(decode(np.zeros((1, 0, 8), dtype=np.float32), 320, 320, LABELS), [])

    def test_custom_threshold(self) -> None:
        raw = [[[0.5, 0.5, 0.2, 0.2, 0.5, 0.5, 0.1, 0.1]]]
        self.assertEqual(decode(raw, 320, 320, LABELS, confidence_threshold=0.3), [])

    def test_pixel_coordinates_are_normalized(self) -> None:
        decoder = OutputDecoder(LABELS, (640, 320), DecoderConfig(pixel_coordinates=True))
        out = decoder.decode([[[320.0, 160.0, 64.0, 32.0, 0.9, 0.9, 0.0, 0.0]]])
        self.assertEqual(len(out), 1)
        self.assertAlmostEqual(out[0].x, 0.5)
        self.assertAlmostEqual(out[0].y, 0.5)
        self.assertAlmostEqual(out[0].width, 0.1)
        self.assertAlmostEqual(out[0].height, 0.1)

    def test_negative_sizes_clamped_to_zero(self) -> None:
        out = decode([[[0.5, 0.5, -0.2, 0.2, 0.9, 0.9, 0.0, 0.0]]], 320, 320, LABELS)
        self.assertEqual(out[0].width, 0.0)


class TestDecodeOtherLayouts(unittest.TestCase):
    def test_grid_output_yields_empty(self) -> None:
        raw = np.random.default_rng(0).random((1, 10, 3, 85), dtype=np.float32)
        self.assertEqual(decode(raw, 320, 320, LABELS), [])

    def test_unsupported_rank_yields_empty(self) -> None:
        self.assertEqual(decode(np.ones((10, 8)), 320, 320, LABELS), [])
        self.assertEqual(decode(np.ones((1, 1, 1, 1, 8)), 320, 320, LABELS), [])


if __name__ == "__main__":
    unittest.main()
