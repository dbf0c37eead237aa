from dataclasses import FrozenInstanceError
from datetime import datetime
import math
import unittest

import numpy as np

from coulter_counter.core.convert import MAX_TOTAL_COUNT, diameter, expand, to_counts, volume
from coulter_counter.core.errors import LengthMismatchError, MalformedValueError, MissingFieldError
from coulter_counter.loaders.z2_loader import decode, infer_sample_from_path


def _z2_lines(**overrides):
    fields = {
        "StartTime": "14:30:00 15/Jan/2023",
        "Cur": "800",
        "Params": "1.5 100 60.4 0.98",
        "BinLims": "1 2 3",
        "BinVols": "0.5 1.5",
        "BinHeights": "2 1",
    }
    fields.update(overrides)
    lines = ["[instrument]", "Operator=lab"]
    lines += [f"{k}={v}" for k, v in fields.items() if v is not None]
    return lines


class ExpandTests(unittest.TestCase):
    def test_zero_count_bin_contributes_nothing(self):
        self.assertEqual([10, 10, 30], expand([10, 20, 30], [2, 0, 1]).tolist())

    def test_length_mismatch(self):
        with self.assertRaises(LengthMismatchError):
            expand([10, 20, 30], [1, 2])

    def test_fractional_counts_truncate_toward_zero(self):
        self.assertEqual([2, 0, 3], to_counts([2.9, 0.2, 3]).tolist())
        self.assertEqual([5, 5, 7], expand([5, 7], [2.7, 1.1]).tolist())

    def test_negative_count_rejected(self):
        with self.assertRaises(MalformedValueError):
            expand([1, 2], [1, -1])

    def test_counts_above_limit_rejected(self):
        for heights in ([1e15, 1], [1e300, 1], [MAX_TOTAL_COUNT, 1]):
            with self.assertRaises(MalformedValueError, msg=heights) as ctx:
                to_counts(heights)
            self.assertIn("exceeds", str(ctx.exception))

    def test_empty(self):
        self.assertEqual(0, expand([], []).size)


class VolumeDiameterTests(unittest.TestCase):
    def test_round_trip(self):
        for d in (0.1, 1, 5, 100):
            self.assertTrue(math.isclose(diameter(volume(d)), d, rel_tol=1e-9), d)

    def test_zero(self):
        self.assertEqual(0.0, volume(0))
        self.assertEqual(0.0, diameter(0))

    def test_known_value(self):
        self.assertAlmostEqual(4.0 / 3.0 * math.pi, volume(2.0))

    def test_arrays(self):
        d = np.array([1.0, 2.0, 4.0])
        out = diameter(volume(d))
        self.assertIsInstance(out, np.ndarray)
        np.testing.assert_allclose(out, d, rtol=1e-9)

    def test_negative_rejected(self):
        with self.assertRaises(ValueError):
            volume(-1.0)
        with self.assertRaises(ValueError):
            diameter(-1.0)


class DecodeTests(unittest.TestCase):
    def test_minimal_file(self):
        run = decode(_z2_lines(), "Ctrl", filename="Ctrl_1.Z2")
        self.assertEqual([2, 2, 3], run.observations.tolist())
        self.assertEqual(len(run.bin_heights) + 1, len(run.bin_limits))
        self.assertEqual(len(run.bin_heights), len(run.bin_volumes))
        self.assertEqual("Ctrl", run.sample)
        self.assertEqual("Ctrl_1.Z2", run.filename)
        self.assertEqual("count", run.y_variable)
        self.assertIsNone(run.rel_time)

    def test_start_time(self):
        run = decode(_z2_lines(), "Ctrl")
        self.assertEqual(datetime(2023, 1, 15, 14, 30, 0), run.timepoint)

    def test_month_is_case_insensitive(self):
        run = decode(_z2_lines(StartTime="08:05:09  03/DEC/2021"), "Ctrl")
        self.assertEqual(datetime(2021, 12, 3, 8, 5, 9), run.timepoint)

    def test_params(self):
        run = decode(_z2_lines(), "Ctrl")
        self.assertEqual({"Current": 800.0, "Threshold": 1.5, "Diameter": 100.0, "K": 60.4, "Chi2": 0.98},
                         dict(run.params))

    def test_any_order_untrimmed_and_tabs(self):
        lines = list(reversed(_z2_lines(BinLims="1\t2   3")))
        lines = ["   " + ln + "  " for ln in lines]
        run = decode(lines, "Ctrl", y_variable="volume")
        self.assertEqual([1.0, 2.0, 3.0], run.bin_limits.tolist())
        self.assertEqual("volume", run.y_variable)

    def test_first_matching_line_wins(self):
        lines = _z2_lines() + ["BinHeights=9 9"]
        run = decode(lines, "Ctrl")
        self.assertEqual([2.0, 1.0], run.bin_heights.tolist())

    def test_fractional_heights_kept_but_truncated_in_observations(self):
        run = decode(_z2_lines(BinHeights="2.9 1.0"), "Ctrl")
        self.assertEqual([2.9, 1.0], run.bin_heights.tolist())
        self.assertEqual([2, 2, 3], run.observations.tolist())
        self.assertEqual(int(sum(int(h) for h in run.bin_heights)), run.observations.size)

    def test_missing_bin_heights(self):
        with self.assertRaises(MissingFieldError) as ctx:
            decode(_z2_lines(BinHeights=None), "Ctrl", filename="Ctrl_1.Z2")
        self.assertEqual("BinHeights", ctx.exception.field)
        self.assertIn("BinHeights", str(ctx.exception))
        self.assertIn("Ctrl_1.Z2", str(ctx.exception))

    def test_missing_start_time(self):
        with self.assertRaises(MissingFieldError) as ctx:
            decode(_z2_lines(StartTime=None), "Ctrl")
        self.assertEqual("StartTime", ctx.exception.field)

    def test_params_with_three_tokens(self):
        with self.assertRaises(MalformedValueError) as ctx:
            decode(_z2_lines(Params="1.5 100 60.4"), "Ctrl")
        self.assertEqual("Params", ctx.exception.field)

    def test_comma_decimal_rejected(self):
        with self.assertRaises(MalformedValueError) as ctx:
            decode(_z2_lines(Cur="800,5"), "Ctrl")
        self.assertEqual("Cur", ctx.exception.field)

    def test_non_numeric_and_non_finite_rejected(self):
        for bad in ("1 x 3", "1 nan 3", "1 inf 3"):
            with self.assertRaises(MalformedValueError, msg=bad):
                decode(_z2_lines(BinLims=bad), "Ctrl")

    def test_bad_dates(self):
        for bad in ("14:30:00", "14:30:00 15/Foo/2023", "14:30:00 31/Feb/2023", "25:30:00 15/Jan/2023"):
            with self.assertRaises(MalformedValueError, msg=bad):
                decode(_z2_lines(StartTime=bad), "Ctrl")

    def test_huge_height_rejected(self):
        for bad in ("1e15 1", "1e300 1"):
            with self.assertRaises(MalformedValueError, msg=bad) as ctx:
                decode(_z2_lines(BinHeights=bad), "Ctrl", filename="x.Z2")
            self.assertEqual("BinHeights", ctx.exception.field)
            self.assertIn("exceeds", str(ctx.exception))

    def test_negative_height_rejected(self):
        with self.assertRaises(MalformedValueError) as ctx:
            decode(_z2_lines(BinHeights="2 -1"), "Ctrl", filename="x.Z2")
        self.assertEqual("BinHeights", ctx.exception.field)
        self.assertEqual("x.Z2", ctx.exception.filename)

    def test_array_length_mismatch_in_file(self):
        with self.assertRaises(LengthMismatchError) as ctx:
            decode(_z2_lines(BinVols="0.5 1.5 2.5"), "Ctrl")
        self.assertEqual("BinVols", ctx.exception.field)
        with self.assertRaises(LengthMismatchError) as ctx:
            decode(_z2_lines(BinLims="1 2"), "Ctrl")
        self.assertEqual("BinLims", ctx.exception.field)

    def test_run_is_immutable(self):
        run = decode(_z2_lines(), "Ctrl")
        with self.assertRaises(FrozenInstanceError):
            run.sample = "other"
        with self.assertRaises(ValueError):
            run.observations[0] = 99.0
        with self.assertRaises(TypeError):
            run.params["K"] = 0
        self.assertEqual(60.4, run.params["K"])

    def test_to_frame(self):
        df = decode(_z2_lines(), "Ctrl").to_frame()
        self.assertEqual(["lower", "upper", "volume", "height"], list(df.columns))
        self.assertEqual([2.0, 3.0], df["upper"].tolist())


class SampleNameTests(unittest.TestCase):
    def test_prefix_before_underscore(self):
        self.assertEqual("Ctrl", infer_sample_from_path("data/Ctrl_day3_A.Z2"))

    def test_no_underscore(self):
        self.assertEqual("Ctrl", infer_sample_from_path("data/Ctrl.Z2"))


if __name__ == "__main__":
    unittest.main()
