"""Unit tests for pixel vectorization.

Tests:
    - One polygon per pixel, row-major, 4 exact integer vertices
    - Alpha collapse (a < 255 → no fill, a == 255 → raw r, g, b)
    - Document layout (canvas = scale * size, unit viewBox)
    - Fixed black stroke of the requested width, including 0
    - Deterministic output regardless of timing
    - First-row estimate messages (fake clock)
    - Reference scenarios: RGB pair, transparent RGBA, mid gray
"""

import re
import xml.etree.ElementTree as ET

import numpy as np
import pytest

from raster2vector.data_pipeline import vectorizer
from raster2vector.data_pipeline.raster_buffer import RasterBuffer
from raster2vector.utils import validators

SVG_NS = "{http://www.w3.org/2000/svg}"


def _parse(doc):
    return ET.fromstring(doc.tostring().encode("utf-8"))


def _polygons(doc):
    return _parse(doc).findall(f"{SVG_NS}polygon")


def _points(element):
    return [tuple(float(v) for v in pair.split(",")) for pair in element.get("points").split()]


def _quiet(_msg):
    pass


@pytest.fixture
def gradient_buffer():
    """3x2 RGBA raster with a distinct color per pixel, bottom-right translucent."""
    arr = np.zeros((2, 3, 4), dtype=np.uint8)
    for row in range(2):
        for col in range(3):
            arr[row, col] = (row * 100, col * 50, 7, 255)
    arr[1, 2, 3] = 254
    return RasterBuffer.from_array(arr)


# ============================================================================
# POLYGON SEQUENCE
# ============================================================================

def test_one_polygon_per_pixel_in_row_major_order(gradient_buffer):
    polys = list(vectorizer.iter_pixel_polygons(gradient_buffer, stroke_width=0.5))
    assert len(polys) == 6

    expected_cells = [(r, c) for r in range(2) for c in range(3)]
    for poly, (row, col) in zip(polys, expected_cells):
        assert len(poly.vertices) == 4
        assert poly.vertices == ((col, row), (col + 1, row), (col + 1, row + 1), (col, row + 1))
        assert all(isinstance(v, int) for vertex in poly.vertices for v in vertex)
        assert poly.stroke_width == 0.5
        assert poly.stroke_color == (0, 0, 0)


def test_fill_follows_alpha_collapse(gradient_buffer):
    polys = list(vectorizer.iter_pixel_polygons(gradient_buffer, stroke_width=0.01))
    assert polys[0].fill == (0, 0, 7)
    assert polys[4].fill == (100, 50, 7)
    assert polys[5].fill is None


@pytest.mark.parametrize("rgba,expected", [
    ((1, 2, 3, 255), (1, 2, 3)),
    ((1, 2, 3, 254), None),
    ((255, 255, 255, 0), None),
    ((0, 0, 0, 255), (0, 0, 0)),
])
def test_pixel_fill(rgba, expected):
    assert vectorizer.pixel_fill(rgba) == expected


def test_unit_cell_is_clockwise_from_top_left():
    assert vectorizer.unit_cell(4, 9) == ((9, 4), (10, 4), (10, 5), (9, 5))


# ============================================================================
# DOCUMENT
# ============================================================================

def test_document_layout(gradient_buffer):
    doc = vectorizer.vectorize(gradient_buffer, scale=2.5, stroke_width=0.01, report=_quiet)
    root = _parse(doc)

    assert len(doc) == 6
    assert float(root.get("width")) == pytest.approx(7.5)
    assert float(root.get("height")) == pytest.approx(5.0)
    assert [float(v) for v in re.split(r"[ ,]+", root.get("viewBox").strip())] == [0, 0, 3, 2]


def test_document_polygons_match_pixels(gradient_buffer):
    doc = vectorizer.vectorize(gradient_buffer, scale=10.0, stroke_width=0.25, report=_quiet)
    elements = _polygons(doc)
    assert len(elements) == 6

    assert _points(elements[1]) == [(1, 0), (2, 0), (2, 1), (1, 1)]
    assert elements[1].get("fill") == "rgb(0,50,7)"
    assert elements[5].get("fill") == "none"
    for el in elements:
        assert el.get("stroke") == "rgb(0,0,0)"
        assert float(el.get("stroke-width")) == 0.25


def test_zero_stroke_width_is_kept(gradient_buffer):
    doc = vectorizer.vectorize(gradient_buffer, scale=1.0, stroke_width=0.0, report=_quiet)
    assert all(float(el.get("stroke-width")) == 0.0 for el in _polygons(doc))


def test_vectorize_is_deterministic(gradient_buffer):
    slow_clock = iter([0.0, 10.0, 30.0]).__next__
    fast_clock = iter([0.0, 0.0001, 0.0002]).__next__

    first = vectorizer.vectorize(gradient_buffer, 3.0, 0.1, report=_quiet, clock=slow_clock)
    second = vectorizer.vectorize(gradient_buffer, 3.0, 0.1, report=_quiet, clock=fast_clock)
    assert first.tostring() == second.tostring()


def test_vectorize_with_options(gradient_buffer, tmp_path):
    options = validators.build_convert_options(
        tmp_path / "in.png", scale=4.0, stroke_width=0.0
    )
    doc = vectorizer.vectorize_with_options(gradient_buffer, options, report=_quiet)
    assert doc.path == tmp_path / "in.svg"
    assert doc.layout.scale == 4.0
    assert len(doc) == 6


# ============================================================================
# TIMING MESSAGES
# ============================================================================

def test_fast_scan_reports_milliseconds(gradient_buffer):
    messages = []
    clock = iter([0.0, 0.001, 0.0025]).__next__
    vectorizer.vectorize(gradient_buffer, 1.0, 0.01, report=messages.append, clock=clock)
    assert messages == ["Path construction time: 2 ms"]


def test_slow_scan_reports_estimate_then_actual():
    buf = RasterBuffer.blank(1, 4, 3)
    messages = []
    clock = iter([0.0, 1.0, 5.0]).__next__
    vectorizer.vectorize(buf, 1.0, 0.01, report=messages.append, clock=clock)
    assert messages == [
        "Estimated path construction time: 4 seconds",
        "Actual path construction time:    5 seconds (20.0% difference from estimate)",
    ]


# ============================================================================
# REFERENCE SCENARIOS
# ============================================================================

def test_scenario_red_green_pair():
    buf = RasterBuffer(2, 1, 3, bytes([255, 0, 0, 0, 255, 0]))
    doc = vectorizer.vectorize(buf, scale=1.0, stroke_width=0.01, report=_quiet)
    root = _parse(doc)
    assert float(root.get("width")) == 2.0 and float(root.get("height")) == 1.0

    red, green = _polygons(doc)
    assert _points(red) == [(0, 0), (1, 0), (1, 1), (0, 1)]
    assert red.get("fill") == "rgb(255,0,0)"
    assert _points(green) == [(1, 0), (2, 0), (2, 1), (1, 1)]
    assert green.get("fill") == "rgb(0,255,0)"


def test_scenario_fully_transparent_pixel():
    buf = RasterBuffer(1, 1, 4, bytes([12, 34, 56, 0]))
    (poly,) = vectorizer.iter_pixel_polygons(buf, 0.01)
    assert poly.fill is None

    doc = vectorizer.vectorize(buf, scale=1.0, stroke_width=0.01, report=_quiet)
    (element,) = _polygons(doc)
    assert element.get("fill") == "none"


def test_scenario_mid_gray():
    buf = RasterBuffer(1, 1, 1, bytes([128]))
    (poly,) = vectorizer.iter_pixel_polygons(buf, 0.01)
    assert poly.fill == (128, 128, 128)
