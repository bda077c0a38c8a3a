import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

import cv2
import numpy as np

from fakes import FakeEngine, FakeTensorBackend
from yolo_runner import cli
from yolo_runner.config import ModelConfig
from yolo_runner.engine import YoloV3Engine
from yolo_runner.errors import ConfigParseError, ModelLoadError
from yolo_runner.runtime import YoloRunner
from yolo_runner.types import NormalizedBox


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.tmp = Path(tmpdir.name)
        self.image_path = self.tmp / "input.png"
        cv2.imwrite(str(self.image_path), np.zeros((80, 80, 3), dtype=np.uint8))
        self.out_path = self.tmp / "result.jpg"

    def _main(self, *extra: str, mode: str = "image", image=None):
        argv = ["model.json", "model.xmodel", str(image or self.image_path), mode, "--out", str(self.out_path), *extra]
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = cli.main(argv)
        return code, buf.getvalue().splitlines()

    def _patch_runner(self, boxes):
        runner = YoloRunner(FakeEngine(boxes))
        return mock.patch.object(cli, "load_runner", return_value=runner)

    def test_image_mode_prints_and_writes(self) -> None:
        box = NormalizedBox(label=0, score=0.875, x=0.125, y=0.25, width=0.5, height=0.375)
        records_path = self.tmp / "records.jsonl"
        with self._patch_runner([box]):
            code, lines = self._main("--records", str(records_path))

        self.assertEqual(code, 0)
        self.assertEqual(lines, ["Model Initialize Done", "person 0.875 10 50 20 50"])
        self.assertTrue(self.out_path.exists())
        records = [json.loads(line) for line in records_path.read_text(encoding="utf-8").splitlines()]
        self.assertEqual(
            records,
            [{"frame_id": "0", "prob": "0.875000", "x": "10.000000", "y": "20.000000", "width": "40.000000", "height": "30.000000"}],
        )

    def test_boxes_are_clipped_for_printing(self) -> None:
        box = NormalizedBox(label=2, score=0.5, x=-0.125, y=0.75, width=0.5, height=0.5)
        with self._patch_runner([box]):
            code, lines = self._main()
        self.assertEqual(code, 0)
        self.assertEqual(lines[1], "car 0.5 0 30 60 79")

    def test_no_detections_still_writes_image(self) -> None:
        with self._patch_runner([]), mock.patch.object(cli, "render") as render, mock.patch.object(
            cli, "to_record"
        ) as to_record:
            code, lines = self._main()
        render.assert_not_called()
        to_record.assert_not_called()
        self.assertEqual(code, 0)
        self.assertEqual(lines, ["Model Initialize Done"])
        self.assertTrue(self.out_path.exists())

    def test_unknown_mode(self) -> None:
        with mock.patch.object(cli, "load_runner") as load:
            code, lines = self._main(mode="video")
        self.assertEqual(code, 6)
        self.assertEqual(lines, [])
        load.assert_not_called()

    def test_config_error_exit_code(self) -> None:
        with mock.patch.object(cli, "load_runner", side_effect=ConfigParseError("bad config")):
            code, _ = self._main()
        self.assertEqual(code, 3)

    def test_real_loader_reports_missing_config(self) -> None:
        code, _ = self._main()
        self.assertEqual(code, 3)

    def test_model_error_exit_code(self) -> None:
        with mock.patch.object(cli, "load_runner", side_effect=ModelLoadError("no model")):
            code, _ = self._main()
        self.assertEqual(code, 4)

    def _write_config(self) -> Path:
        path = self.tmp / "model.json"
        path.write_text(
            json.dumps({"name": "t", "num_classes": 2, "anchor_count": 1, "biases": [10, 10, 20, 20]}),
            encoding="utf-8",
        )
        return path

    def test_model_output_mismatch_exit_code(self) -> None:
        # Three 80-class heads against a 2-class, 2-layer config
        backend = FakeTensorBackend([np.zeros((1, 4, 4, 255), dtype=np.float32)] * 3)
        argv = [str(self._write_config()), str(self.tmp / "model.onnx"), str(self.image_path), "image"]
        argv += ["--out", str(self.out_path)]
        with mock.patch("yolo_runner.backends.onnxruntime_backend.OnnxRuntimeBackend", return_value=backend):
            with redirect_stdout(io.StringIO()):
                code = cli.main(argv)
        self.assertEqual(code, 4)
        self.assertFalse(self.out_path.exists())

    def test_model_output_mismatch_found_at_detect(self) -> None:
        backend = FakeTensorBackend(
            [np.zeros((1, 4, 4, 255), dtype=np.float32)] * 2,
            output_shapes=[("n", "h", "w", "c")] * 2,
        )
        cfg = ModelConfig(name="t", num_classes=2, anchor_count=1, biases=(10.0, 10.0, 20.0, 20.0))
        runner = YoloRunner(YoloV3Engine(backend, cfg))
        with mock.patch.object(cli, "load_runner", return_value=runner):
            code, _ = self._main()
        self.assertEqual(code, 4)

    def test_unreadable_image(self) -> None:
        with self._patch_runner([]):
            code, _ = self._main(image=self.tmp / "missing.jpg")
        self.assertEqual(code, 5)
        self.assertFalse(self.out_path.exists())

    def test_label_out_of_range(self) -> None:
        box = NormalizedBox(label=80, score=0.9, x=0.0, y=0.0, width=0.5, height=0.5)
        with self._patch_runner([box]):
            code, _ = self._main()
        self.assertEqual(code, 7)

    def test_custom_label_table(self) -> None:
        labels = self.tmp / "metadata.yaml"
        labels.write_text("names:\n  0: helmet\n", encoding="utf-8")
        box = NormalizedBox(label=0, score=0.5, x=0.0, y=0.0, width=0.5, height=0.5)
        with self._patch_runner([box]):
            code, lines = self._main("--labels", str(labels))
        self.assertEqual(code, 0)
        self.assertTrue(lines[1].startswith("helmet 0.5 "))


if __name__ == "__main__":
    unittest.main()
