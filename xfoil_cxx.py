#!/usr/bin/env python3
"""
XFOIL/XFLR5 data → C++ literals for the Xefis simulator.

Reads airfoil coordinate files and XFLR5 polar exports, and prints C++ source
fragments declaring the constant tables the simulator compiles in: an
``xf::AirfoilSpline`` for the shape and four ``xf::Field`` tables (lift, drag,
pitching moment, center-of-pressure offset) mapping Reynolds number and angle
of attack to a coefficient.

Usage examples:
    airfoil-spline-to-cxx sim_airfoil e387.dat > e387_spline.h
    polars-to-cxx sim_airfoil e387_re100k.csv e387_re200k.csv > e387_fields.h
    polars-to-cxx sim_airfoil *.csv -o fields.h --plot fields.png -v
"""

import argparse
import enum
import os
import re
import sys
from operator import attrgetter

import numpy as np

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


SPLINE_INCLUDE = "xefis/support/simulation/airfoil_spline.h"
SPLINE_TYPE = "xf::AirfoilSpline"
SPLINE_VARIABLE = "kSpline"

FIELD_INCLUDE = "neutrino/math/field.h"
FIELD_TYPE = "xf::Field<double, si::Angle, double>"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class SplineFormatError(ValueError):
    """Coordinate line that doesn't hold an (x, y) pair."""


class PolarFormatError(ValueError):
    """Polar file that can't be turned into a table."""


class ReynoldsNotFoundError(PolarFormatError):
    """No ``Mach = … Re = …`` line with a Reynolds number."""


class HeaderNotFoundError(PolarFormatError):
    """No CSV header line with ``alpha`` and ``Top Xtr`` columns."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

class Quantity(enum.Enum):
    """Physical quantities emitted as separate Field tables."""

    LIFT = ("cl", "kLiftField", "$C_L$")
    DRAG = ("cd", "kDragField", "$C_D$")
    PITCHING_MOMENT = ("cm", "kPitchingMomentField", "$C_M$")
    CENTER_OF_PRESSURE_OFFSET = ("xcp", "kCenterOfPressureOffsetField",
                                 "$X_{cp}$")

    def __init__(self, column, variable, label):
        self.column = column
        self.variable = variable
        self.label = label


class PolarTable:
    """One polar (one Reynolds number): parallel column arrays by name."""

    def __init__(self, reynolds, columns, source=None):
        self.reynolds = float(reynolds)
        self.columns = columns
        self.source = source

    def __len__(self):
        return len(self.columns["alpha"]) if "alpha" in self.columns else 0

    def __repr__(self):
        return (f"PolarTable(reynolds={self.reynolds!r}, "
                f"columns={sorted(self.columns)}, rows={len(self)}, "
                f"source={self.source!r})")

    def column(self, name):
        """Return column *name*, or raise PolarFormatError if absent."""
        try:
            return self.columns[name]
        except KeyError:
            raise PolarFormatError(
                f"{self.source or '<polar>'}: no '{name}' column "
                f"(have: {', '.join(self.columns)})") from None


class ParseState(enum.Enum):
    SEARCH_REYNOLDS = "search_reynolds"
    SEARCH_CSV_HEADER = "search_csv_header"
    CSV = "csv"


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------

def parse_spline(lines, source=None):
    """Parse airfoil coordinate lines → (N, 2) array of (x, y) points.

    The first line is the airfoil name and is skipped. Blank lines are
    ignored; anything else must hold exactly two numbers.
    """
    where = source or "<spline>"
    points = []
    for number, line in enumerate(lines, start=1):
        if number == 1:
            continue  # airfoil name
        parts = line.split()
        if not parts:
            continue
        if len(parts) != 2:
            raise SplineFormatError(
                f"{where}:{number}: expected 2 coordinates, got {len(parts)}")
        try:
            points.append((float(parts[0]), float(parts[1])))
        except ValueError:
            raise SplineFormatError(
                f"{where}:{number}: bad coordinate in {line.strip()!r}"
            ) from None
    return np.array(points, dtype=float).reshape(len(points), 2)


def read_spline(path):
    """Read an airfoil coordinate file → (N, 2) array."""
    with open(path) as fh:
        return parse_spline(fh, source=path)


# XFLR5 writes exponents with spaces around the "e": "Re = 0.200 e 6".
_KEY_VALUE = re.compile(
    r"([a-z_]\w*)\s*=\s*"
    r"([-+]?(?:\d+\.?\d*|\.\d+)(?:\s*e\s*[-+]?\s*\d+)?)",
    re.IGNORECASE)
_MACH_LINE = re.compile(r"\s*mach\s*=", re.IGNORECASE)


def parse_key_values(text):
    """Tokenize ``key = value`` pairs → {lower-cased key: float}.

    Accepts any spacing:
        "Mach =   0.000     Re =     0.200 e 6     Ncrit =   9.000"
        "mach=0.5 re=200000 ncrit=9"
    """
    return {key.lower(): float(re.sub(r"\s+", "", value))
            for key, value in _KEY_VALUE.findall(text)}


def _parse_row(line, where, number):
    tokens = "".join(line.split()).rstrip(",").split(",")
    try:
        return [float(t) for t in tokens]
    except ValueError:
        raise PolarFormatError(
            f"{where}:{number}: bad number in {line.strip()!r}") from None


def parse_polar(lines, source=None):
    """Parse an XFLR5 CSV polar export → PolarTable.

    Walks SEARCH_REYNOLDS → SEARCH_CSV_HEADER → CSV. Running out of input in
    either search state raises ReynoldsNotFoundError / HeaderNotFoundError.
    """
    where = source or "<polar>"
    state = ParseState.SEARCH_REYNOLDS
    reynolds = None
    header = []
    rows = []

    for number, line in enumerate(lines, start=1):
        if state is ParseState.SEARCH_REYNOLDS:
            if _MACH_LINE.match(line):
                values = parse_key_values(line)
                if "re" not in values:
                    raise ReynoldsNotFoundError(
                        f"{where}:{number}: no Re value in {line.strip()!r}")
                reynolds = values["re"]
                state = ParseState.SEARCH_CSV_HEADER
        elif state is ParseState.SEARCH_CSV_HEADER:
            lowered = line.lower()
            if "alpha" in lowered and "top xtr" in lowered:
                header = [name.strip()
                          for name in lowered.strip().rstrip(",").split(",")]
                state = ParseState.CSV
        else:
            if not line.strip():
                continue
            row = _parse_row(line, where, number)
            if len(row) != len(header):
                raise PolarFormatError(
                    f"{where}:{number}: {len(row)} values for "
                    f"{len(header)} columns")
            rows.append(row)

    if state is ParseState.SEARCH_REYNOLDS:
        raise ReynoldsNotFoundError(f"{where}: no 'Mach = … Re = …' line")
    if state is ParseState.SEARCH_CSV_HEADER:
        raise HeaderNotFoundError(
            f"{where}: no CSV header with 'alpha' and 'Top Xtr'")

    data = np.array(rows, dtype=float).reshape(len(rows), len(header))
    columns = {name: data[:, i] for i, name in enumerate(header)}
    return PolarTable(reynolds, columns, source=source)


def read_polar(path):
    """Read one XFLR5 polar file → PolarTable tagged with *path*."""
    with open(path) as fh:
        return parse_polar(fh, source=path)


def sort_polars(tables):
    """Sort tables by Reynolds number, ascending; ties keep their order."""
    return sorted(tables, key=attrgetter("reynolds"))


def load_polars(paths, verbose=False):
    """Read every polar file and return them sorted by Reynolds number."""
    tables = []
    for path in paths:
        table = read_polar(path)
        if verbose:
            _log(f"Parsed {path}: Re = {table.reynolds:.0f}, "
                 f"{len(table)} points")
        if len(table) == 0:
            _log(f"WARNING: {path} has no data rows")
        tables.append(table)

    tables = sort_polars(tables)
    for a, b in zip(tables, tables[1:]):
        if a.reynolds == b.reynolds:
            _log(f"WARNING: {a.source} and {b.source} share "
                 f"Re = {a.reynolds:.0f}")
    return tables


# ---------------------------------------------------------------------------
# C++ emitters
# ---------------------------------------------------------------------------

def _wrap_namespace(include, namespace, body):
    return (f"#include <{include}>\n"
            f"\n\n"
            f"namespace {namespace} {{\n"
            f"\n"
            f"{body}"
            f"\n"
            f"}} // namespace {namespace}\n")


def format_spline(points, variable=SPLINE_VARIABLE):
    """Spline declaration, one ``{ x, y }`` line per point."""
    lines = [f"static {SPLINE_TYPE} const", f"{variable} {{"]
    lines += [f"\t{{ {x:10.6f}, {y:10.6f} }}," for x, y in points]
    lines.append("};")
    return "\n".join(lines) + "\n"


def emit_spline(points, namespace, variable=SPLINE_VARIABLE):
    """Complete C++ source for an airfoil spline."""
    return _wrap_namespace(SPLINE_INCLUDE, namespace,
                           format_spline(points, variable))


def emit_field(tables, quantity):
    """Field declaration for one *quantity*, one block per table.

    *tables* must already be sorted by Reynolds number.
    """
    lines = [f"static {FIELD_TYPE} const", f"{quantity.variable} {{"]
    for table in tables:
        alpha = table.column("alpha")
        values = table.column(quantity.column)
        lines += ["\t{", f"\t\t{table.reynolds!r},", "\t\t{"]
        lines += [f"\t\t\t{{ {a:8.3f}_deg, {v:.4f} }},"
                  for a, v in zip(alpha, values)]
        lines += ["\t\t},", "\t},"]
    lines.append("};")
    return "\n".join(lines) + "\n"


def emit_fields(tables, namespace):
    """Complete C++ source with all four Field tables."""
    body = "\n".join(emit_field(tables, q) for q in Quantity)
    return _wrap_namespace(FIELD_INCLUDE, namespace, body)


# ---------------------------------------------------------------------------
# Preview plots
# ---------------------------------------------------------------------------

_STYLE_DARK = {
    "bg": "#0c0c0c", "fg": "white", "airfoil": "#00ccff",
    "grid_alpha": 0.15,
}
_STYLE_LIGHT = {
    "bg": "white", "fg": "black", "airfoil": "black",
    "grid_alpha": 0.25,
}


def _apply_style(dark):
    sty = _STYLE_DARK if dark else _STYLE_LIGHT
    plt.style.use("dark_background" if dark else "default")
    return sty


def plot_spline(points, name, output, dark=True):
    """Airfoil geometry as it will be compiled in."""
    sty = _apply_style(dark)

    fig, ax = plt.subplots(figsize=(12, 4))
    if len(points):
        ax.plot(points[:, 0], points[:, 1], "-o", color=sty["airfoil"],
                lw=1.5, ms=2)
        ax.fill(points[:, 0], points[:, 1], alpha=0.08, color=sty["airfoil"])
    ax.set_xlabel("x/c", fontsize=13)
    ax.set_ylabel("y/c", fontsize=13)
    ax.set_title(f"{name} — {len(points)} spline points", fontsize=13,
                 fontweight="bold")
    ax.set_aspect("equal")
    ax.grid(True, alpha=sty["grid_alpha"])

    fig.tight_layout()
    fig.savefig(output, dpi=150, bbox_inches="tight", facecolor=sty["bg"])
    plt.close(fig)


def plot_polars(tables, output, dark=True):
    """2×2 grid, one panel per Quantity, one line per Reynolds number."""
    sty = _apply_style(dark)

    fig, axes = plt.subplots(2, 2, figsize=(13, 10))
    fig.suptitle(f"{len(tables)} polars", fontsize=14, fontweight="bold")

    for ax, quantity in zip(axes.flat, Quantity):
        for table in tables:
            if quantity.column not in table.columns:
                continue
            ax.plot(table.column("alpha"), table.column(quantity.column),
                    "-o", ms=2, lw=1.2, label=f"Re = {table.reynolds:.2e}")
        ax.set_xlabel("α (°)")
        ax.set_ylabel(quantity.label)
        ax.set_title(quantity.variable)
        ax.grid(True, alpha=sty["grid_alpha"])
        ax.axhline(0, color="gray", lw=0.4)
        if ax.get_legend_handles_labels()[0]:
            ax.legend(fontsize=8)

    fig.tight_layout()
    fig.savefig(output, dpi=150, bbox_inches="tight", facecolor=sty["bg"])
    plt.close(fig)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def _log(message):
    print(message, file=sys.stderr)


def _write_output(source, path):
    if path:
        with open(path, "w") as fh:
            fh.write(source)
    else:
        sys.stdout.write(source)


def _add_common_arguments(parser):
    parser.add_argument("--output", "-o", type=str, default=None,
                        help="Write source to this file (default: stdout)")
    parser.add_argument("--plot", type=str, default=None,
                        help="Also save a preview image (png/svg/pdf)")
    parser.add_argument("--light", action="store_true",
                        help="Light colour theme for --plot (default: dark)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Report progress on stderr")


def spline_main(argv=None):
    parser = argparse.ArgumentParser(
        prog="airfoil-spline-to-cxx",
        description="Convert an airfoil coordinate file to an "
                    "xf::AirfoilSpline C++ literal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s sim_airfoil e387.dat > e387_spline.h
  %(prog)s sim_airfoil e387.dat -o e387_spline.h --plot e387.png
""")
    parser.add_argument("namespace", help="C++ namespace for the constant")
    parser.add_argument("filename", help="Airfoil coordinate .dat file")
    parser.add_argument("--variable", type=str, default=SPLINE_VARIABLE,
                        help=f"Variable name (default: {SPLINE_VARIABLE})")
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    try:
        points = read_spline(args.filename)
        source = emit_spline(points, args.namespace, args.variable)
        _write_output(source, args.output)
    except (OSError, SplineFormatError) as e:
        _log(f"ERROR: {e}")
        sys.exit(1)

    if args.verbose:
        _log(f"Parsed {args.filename}: {len(points)} points")
    if args.plot:
        plot_spline(points, os.path.basename(args.filename), args.plot,
                    dark=not args.light)
        if args.verbose:
            _log(f"Preview → {args.plot}")


def polars_main(argv=None):
    parser = argparse.ArgumentParser(
        prog="polars-to-cxx",
        description="Convert XFLR5 polar CSV exports to xf::Field C++ "
                    "literals (lift, drag, pitching moment, center of "
                    "pressure)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s sim_airfoil re100k.csv re200k.csv re500k.csv > fields.h
  %(prog)s sim_airfoil *.csv -o fields.h --plot fields.png -v
""")
    parser.add_argument("namespace", help="C++ namespace for the constants")
    parser.add_argument("filenames", nargs="+", metavar="filename",
                        help="XFLR5 polar CSV file, one per Reynolds number")
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    try:
        tables = load_polars(args.filenames, verbose=args.verbose)
        source = emit_fields(tables, args.namespace)
        _write_output(source, args.output)
    except (OSError, PolarFormatError) as e:
        _log(f"ERROR: {e}")
        sys.exit(1)

    if args.plot:
        plot_polars(tables, args.plot, dark=not args.light)
        if args.verbose:
            _log(f"Preview → {args.plot}")


if __name__ == "__main__":
    # python3 xfoil_cxx.py spline|polars <args...>
    commands = {"spline": spline_main, "polars": polars_main}
    if len(sys.argv) < 2 or sys.argv[1] not in commands:
        _log(f"usage: {os.path.basename(sys.argv[0])} "
             f"{{spline,polars}} ...")
        sys.exit(2)
    commands[sys.argv[1]](sys.argv[2:])
