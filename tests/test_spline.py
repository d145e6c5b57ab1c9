import re

import numpy as np
import pytest

import xfoil_cxx
from xfoil_cxx import SplineFormatError, emit_spline, parse_spline, read_spline


def test_header_line_is_skipped(spline_file):
    points = read_spline(spline_file)
    assert points.shape == (5, 2)
    assert points[0].tolist() == [1.0, 0.00126]
    assert points[3].tolist() == [0.5, -0.05294]


def test_irregular_whitespace():
    points = parse_spline(["E387\n", "\t1.0    0.25  \n", "  0.5\t\t-0.125\n"])
    assert points.tolist() == [[1.0, 0.25], [0.5, -0.125]]


def test_header_only_gives_empty_spline():
    points = parse_spline(["empty airfoil\n"])
    assert points.shape == (0, 2)


def test_blank_lines_ignored():
    points = parse_spline(["name\n", "\n", "1 0\n", "   \n", "0 0\n"])
    assert len(points) == 2


@pytest.mark.parametrize("line", ["1.0\n", "1.0 2.0 3.0\n", "1.0 abc\n"])
def test_malformed_line(line):
    with pytest.raises(SplineFormatError, match=":3:"):
        parse_spline(["name\n", "0.0 0.0\n", line], source="foil.dat")


def test_emit_exact_layout():
    points = np.array([[1.0, 0.0], [0.25, -0.05]])
    assert emit_spline(points, "sim_airfoil") == (
        "#include <xefis/support/simulation/airfoil_spline.h>\n"
        "\n\n"
        "namespace sim_airfoil {\n"
        "\n"
        "static xf::AirfoilSpline const\n"
        "kSpline {\n"
        "\t{   1.000000,   0.000000 },\n"
        "\t{   0.250000,  -0.050000 },\n"
        "};\n"
        "\n"
        "} // namespace sim_airfoil\n"
    )


def test_emit_custom_variable():
    source = emit_spline(np.zeros((1, 2)), "ns", variable="kWingletSpline")
    assert "\nkWingletSpline {\n" in source


def test_emitted_values_reparse_to_precision(spline_file):
    points = read_spline(spline_file)
    source = emit_spline(points, "ns")
    pairs = re.findall(r"^\t\{\s*(\S+),\s*(\S+) \},$", source, re.MULTILINE)
    assert len(pairs) == len(points)
    np.testing.assert_allclose(np.array(pairs, dtype=float), points,
                               atol=5e-7)


def test_rounds_to_six_decimals():
    source = xfoil_cxx.format_spline(np.array([[0.1234567, -0.0000004]]))
    assert "\t{   0.123457,  -0.000000 },\n" in source
