import pytest


POLAR_HEADER = (" alpha,      CL,      CD,     CDp,      Cm, Top Xtr, Bot Xtr,"
                "   Cpmin,  Chinge,    XCp")


def polar_text(rows, re_line=None, reynolds=200000):
    """Build an XFLR5-style CSV polar export.

    *rows* are (alpha, cl, cd, cm, xcp) tuples; the other columns are filler.
    """
    if re_line is None:
        re_line = (f" Mach =   0.000     Re =     {reynolds / 1e6:.3f} e 6"
                   f"     Ncrit =   9.000")
    lines = [
        "xflr5 v6.47",
        "",
        " Calculated polar for: NACA 0012",
        "",
        " 1 1 Reynolds number fixed          Mach number fixed",
        "",
        re_line,
        "",
        POLAR_HEADER,
    ]
    for alpha, cl, cd, cm, xcp in rows:
        lines.append(f"{alpha:7.3f},{cl:9.4f},{cd:9.5f},{cd / 2:9.5f},"
                     f"{cm:9.4f},  0.5000,  0.9000, -1.2000,   0.0000,"
                     f"{xcp:9.4f}")
    lines.append("")
    return "\n".join(lines) + "\n"


@pytest.fixture
def write_polar(tmp_path):
    """Factory writing a polar file into tmp_path, returns its path."""
    def write(name, rows, **kwargs):
        path = tmp_path / name
        path.write_text(polar_text(rows, **kwargs))
        return str(path)
    return write


SPLINE_TEXT = """NACA 0012 (trimmed)
  1.000000  0.001260
  0.500000  0.052940
  0.000000  0.000000
  0.500000 -0.052940
  1.000000 -0.001260
"""


@pytest.fixture
def spline_file(tmp_path):
    path = tmp_path / "naca0012.dat"
    path.write_text(SPLINE_TEXT)
    return str(path)


@pytest.fixture
def make_polar_text():
    return polar_text
