import unittest

import numpy as np

from yolo_runner.annotate import BOX_COLOR, clip_to_image, format_detection_line, render, to_record
from yolo_runner.types import Detection


def _det(x_min, y_min, width, height, score=0.9, label=0) -> Detection:
    return Detection(label=label, score=score, x_min=x_min, y_min=y_min, width=width, height=height)


class TestClipToImage(unittest.TestCase):
    def test_clamps_far_edges_to_last_pixel(self) -> None:
        self.assertEqual(clip_to_image(_det(90, 90, 20, 20), 100, 100), (90, 90, 99, 99))

    def test_clamps_negative_origin(self) -> None:
        self.assertEqual(clip_to_image(_det(-10, -10, 30, 30), 50, 50), (0, 0, 20, 20))

    def test_in_bounds_box_is_unchanged(self) -> None:
        self.assertEqual(clip_to_image(_det(10, 20, 30, 40), 100, 100), (10, 20, 40, 60))

    def test_box_ending_at_origin(self) -> None:
        xmin, ymin, xmax, ymax = clip_to_image(_det(-5, -5, 5, 5), 100, 100)
        self.assertEqual((xmin, xmax), (0, 0))
        self.assertEqual((ymin, ymax), (0, 0))

    def test_axes_are_independent(self) -> None:
        # Only y overflows; x must pass through untouched.
        self.assertEqual(clip_to_image(_det(5, 40, 10, 30), 100, 50), (5, 40, 15, 49))


class TestToRecord(unittest.TestCase):
    def test_uses_raw_unclamped_values(self) -> None:
        det = _det(-3.25, 4, 10, 20.5, score=0.5)
        self.assertEqual(
            to_record(det, frame_id=7),
            {
                "frame_id": "7",
                "prob": "0.500000",
                "x": "-3.250000",
                "y": "4.000000",
                "width": "10.000000",
                "height": "20.500000",
            },
        )

    def test_repeated_calls_match_and_leave_input_alone(self) -> None:
        det = _det(1.5, 2.5, 3.5, 4.5)
        before = Detection(**det.__dict__)
        first = to_record(det, 0)
        second = to_record(det, 0)
        self.assertEqual(first, second)
        self.assertEqual(det, before)


class TestFormatDetectionLine(unittest.TestCase):
    def test_field_order_is_xmin_xmax_ymin_ymax(self) -> None:
        line = format_detection_line("person", 0.875, (0.0, 1.5, 99.0, 50.0))
        self.assertEqual(line, "person 0.875 0 99 1.5 50")


class TestRender(unittest.TestCase):
    def test_draws_in_place(self) -> None:
        img = np.zeros((50, 50, 3), dtype=np.uint8)
        out = render(img, (10.0, 10.0, 40.0, 40.0))
        self.assertIs(out, img)
        self.assertEqual(tuple(img[10, 25]), BOX_COLOR)
        self.assertEqual(tuple(img[25, 10]), BOX_COLOR)
        self.assertEqual(tuple(img[25, 25]), (0, 0, 0))

    def test_label_text_is_drawn(self) -> None:
        plain = render(np.zeros((80, 80, 3), dtype=np.uint8), (10.0, 30.0, 70.0, 70.0))
        labelled = render(np.zeros((80, 80, 3), dtype=np.uint8), (10.0, 30.0, 70.0, 70.0), "cat")
        self.assertGreater(int(np.count_nonzero(labelled)), int(np.count_nonzero(plain)))


if __name__ == "__main__":
    unittest.main()
