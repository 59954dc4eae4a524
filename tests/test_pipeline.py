import tempfile
import unittest
from pathlib import Path

import numpy as np

from fakes import LABELS, RecordingEngine, constant_engine, direct_tensor, failing_engine
from yolo_overlay.decoder import DecoderConfig
from yolo_overlay.errors import InitializationFailure
from yolo_overlay.pipeline import DetectionPipeline, infer_backend, load_pipeline, resolve_path


ROWS = [
    [0.5, 0.5, 0.2, 0.2, 0.9, 0.9, 0.1, 0.0],
    [0.52, 0.52, 0.2, 0.2, 0.85, 0.9, 0.1, 0.0],
]


def blob() -> np.ndarray:
    return np.zeros((1, 320, 320, 3), dtype=np.float32)


class TestDetectionPipelineInitialize(unittest.TestCase):
    def test_caches_input_size_from_metadata(self) -> None:
        engine = constant_engine(direct_tensor(ROWS), input_shape=(1, 3, 416, 640), output_shape=(1, 2, 8))
        pipe = DetectionPipeline.initialize(engine, LABELS)
        self.assertEqual((pipe.input_width, pipe.input_height), (640, 416))
        self.assertEqual(pipe.labels, LABELS)

    def test_empty_labels_rejected(self) -> None:
        with self.assertRaises(InitializationFailure):
            DetectionPipeline.initialize(constant_engine(direct_tensor(ROWS)), [])

    def test_dynamic_input_size_rejected(self) -> None:
        engine = constant_engine(direct_tensor(ROWS), input_shape=(1, 3, None, None))
        with self.assertRaises(InitializationFailure):
            DetectionPipeline.initialize(engine, LABELS)

    def test_unexpected_output_rank_is_not_fatal(self) -> None:
        engine = constant_engine(np.zeros((1, 8)), output_shape=(1, 8))
        with self.assertLogs("yolo_overlay.pipeline", level="WARNING"):
            pipe = DetectionPipeline.initialize(engine, LABELS)
        self.assertEqual(pipe.run(blob()), [])


class TestDetectionPipelineRun(unittest.TestCase):
    def test_end_to_end_direct_output(self) -> None:
        engine = constant_engine(direct_tensor(ROWS))
        pipe = DetectionPipeline.initialize(engine, LABELS)
        out = pipe.run(blob())
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].class_id, 0)
        self.assertEqual(out[0].class_name, "person")
        self.assertAlmostEqual(out[0].confidence, 0.81, places=5)
        self.assertEqual(len(engine.calls), 1)

    def test_callable(self) -> None:
        pipe = DetectionPipeline.initialize(constant_engine(direct_tensor(ROWS)), LABELS)
        self.assertEqual(pipe(blob()), pipe.run(blob()))

    def test_decoder_config_applied(self) -> None:
        engine = constant_engine(direct_tensor(ROWS))
        pipe = DetectionPipeline.initialize(engine, LABELS, decoder_cfg=DecoderConfig(conf_threshold=0.9))
        self.assertEqual(pipe.run(blob()), [])

    def test_engine_error_yields_empty_list(self) -> None:
        engine = failing_engine(RuntimeError("native backend missing"))
        pipe = DetectionPipeline.initialize(engine, LABELS)
        with self.assertLogs("yolo_overlay.pipeline", level="WARNING") as logs:
            self.assertEqual(pipe.run(blob()), [])
        self.assertTrue(any("native backend missing" in line for line in logs.output))

    def test_next_frame_is_independent_of_failed_frame(self) -> None:
        outputs = [ValueError("bad input size"), direct_tensor(ROWS)]

        def infer(_: np.ndarray) -> np.ndarray:
            item = outputs.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        pipe = DetectionPipeline.initialize(RecordingEngine(infer), LABELS)
        with self.assertLogs("yolo_overlay.pipeline", level="WARNING"):
            self.assertEqual(pipe.run(blob()), [])
        self.assertEqual(len(pipe.run(blob())), 1)

    def test_engine_returning_none_yields_empty_list(self) -> None:
        pipe = DetectionPipeline.initialize(constant_engine(None), LABELS)
        with self.assertLogs("yolo_overlay.pipeline", level="WARNING"):
            self.assertEqual(pipe.run(blob()), [])

    def test_ragged_multi_output_yields_empty_list(self) -> None:
        engine = constant_engine([np.zeros((1, 2, 8)), np.zeros((1, 3))])
        pipe = DetectionPipeline.initialize(engine, LABELS)
        with self.assertLogs("yolo_overlay.pipeline", level="WARNING"):
            self.assertEqual(pipe.run(blob()), [])
        self.assertEqual(len(engine.calls), 1)

    def test_non_numeric_output_yields_empty_list(self) -> None:
        pipe = DetectionPipeline.initialize(constant_engine(np.full((1, 2, 8), "x")), LABELS)
        with self.assertLogs("yolo_overlay.pipeline", level="WARNING") as logs:
            self.assertEqual(pipe.run(blob()), [])
        self.assertTrue(any("not numeric" in line for line in logs.output))

    def test_grid_output_yields_empty_list(self) -> None:
        engine = constant_engine(np.ones((1, 10, 3, 8), dtype=np.float32), output_shape=(1, 10, 3, 8))
        pipe = DetectionPipeline.initialize(engine, LABELS)
        self.assertEqual(pipe.run(blob()), [])

    def test_unsupported_output_yields_empty_list(self) -> None:
        engine = constant_engine(np.ones((2, 8), dtype=np.float32))
        pipe = DetectionPipeline.initialize(engine, LABELS)
        with self.assertLogs("yolo_overlay.pipeline", level="WARNING") as logs:
            self.assertEqual(pipe.run(blob()), [])
        self.assertTrue(any("Unsupported output shape" in line for line in logs.output))


class TestDetectionPipelineShutdown(unittest.TestCase):
    def test_shutdown_releases_engine_once(self) -> None:
        engine = constant_engine(direct_tensor(ROWS))
        pipe = DetectionPipeline.initialize(engine, LABELS)
        pipe.shutdown()
        pipe.shutdown()
        self.assertEqual(engine.close_count, 1)
        self.assertTrue(pipe.closed)

    def test_run_after_shutdown_returns_empty(self) -> None:
        engine = constant_engine(direct_tensor(ROWS))
        pipe = DetectionPipeline.initialize(engine, LABELS)
        pipe.shutdown()
        with self.assertLogs("yolo_overlay.pipeline", level="ERROR"):
            self.assertEqual(pipe.run(blob()), [])
        self.assertEqual(engine.calls, [])

    def test_context_manager(self) -> None:
        engine = constant_engine(direct_tensor(ROWS))
        with DetectionPipeline.initialize(engine, LABELS) as pipe:
            self.assertEqual(len(pipe.run(blob())), 1)
        self.assertEqual(engine.close_count, 1)


class TestLoadPipeline(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name)
        (self.root / "classes.txt").write_text("person\ncar\n", encoding="utf-8")

    def test_missing_model_is_initialization_failure(self) -> None:
        with self.assertRaises(InitializationFailure):
            load_pipeline("missing.onnx", "classes.txt", root=self.root)

    def test_missing_labels_is_initialization_failure(self) -> None:
        with self.assertRaises(InitializationFailure):
            load_pipeline("model.onnx", "missing.txt", root=self.root)

    def test_unknown_extension_is_initialization_failure(self) -> None:
        with self.assertRaises(InitializationFailure):
            load_pipeline("model.bin", "classes.txt", root=self.root)

    def test_infer_backend(self) -> None:
        self.assertEqual(infer_backend("a/model.onnx"), "onnxruntime")
        self.assertEqual(infer_backend("model.TFLITE"), "litert")
        self.assertEqual(infer_backend("model.torchscript"), "torchscript")
        with self.assertRaises(ValueError):
            infer_backend("model.h5")

    def test_resolve_path(self) -> None:
        self.assertEqual(resolve_path("models/a.onnx", root=self.root), (self.root / "models" / "a.onnx").resolve())
        absolute = (self.root / "b.onnx").resolve()
        self.assertEqual(resolve_path(absolute), absolute)


if __name__ == "__main__":
    unittest.main()
