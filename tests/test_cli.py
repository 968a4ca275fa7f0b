"""End-to-end tests for the command-line converter.

Tests:
    - Successful conversion (exit 0, narrative, derived output path)
    - --help exits 0
    - Bad options (scale <= 0, negative stroke, missing/duplicate input) exit 1
      before anything is decoded or written
    - Decode failure exits 1 with the decoder's reason, no output written
    - Save failure exits 1 with "File output failed!"
    - Config file supplies defaults; flags override it
"""

import logging
import sys
import xml.etree.ElementTree as ET

import pytest
from PIL import Image

from raster2vector import cli
from raster2vector.utils import logging_config

SVG_NS = "{http://www.w3.org/2000/svg}"


@pytest.fixture(autouse=True)
def isolate_logging(monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield
    logging_config.setup_logging(to_stderr=False, capture_warnings=False)
    logging_config.pop_context()
    logging.getLogger().setLevel(logging.WARNING)


@pytest.fixture
def rgb_pair(tmp_path):
    """2x1 PNG: red, green."""
    path = tmp_path / "pair.png"
    Image.frombytes("RGB", (2, 1), bytes([255, 0, 0, 0, 255, 0])).save(path)
    return path


def _svg_root(path):
    return ET.fromstring(path.read_bytes())


def test_convert_success(rgb_pair, capsys):
    assert cli.main([str(rgb_pair), "--scale", "1"]) == 0

    out = capsys.readouterr().out
    svg_path = rgb_pair.with_suffix(".svg")
    assert f"Converting {rgb_pair} to {svg_path}." in out
    assert "Image is 2x1, with 3 color channels." in out
    assert "Path construction time:" in out
    assert "Completed successfully." in out

    root = _svg_root(svg_path)
    assert float(root.get("width")) == 2.0
    fills = [el.get("fill") for el in root.findall(f"{SVG_NS}polygon")]
    assert fills == ["rgb(255,0,0)", "rgb(0,255,0)"]


def test_convert_with_flags(rgb_pair, tmp_path):
    out = tmp_path / "out" / "pair.svg"
    code = cli.main(["-i", str(rgb_pair), "-o", str(out), "-s", "3", "-w", "0"])
    assert code == 0

    root = _svg_root(out)
    assert float(root.get("height")) == 3.0
    assert all(float(el.get("stroke-width")) == 0.0 for el in root.findall(f"{SVG_NS}polygon"))


def test_convert_main_returns_summary(rgb_pair):
    from raster2vector.utils import validators

    messages = []
    options = validators.build_convert_options(rgb_pair, scale=2.0)
    result = cli.convert_main(options, report=messages.append)
    assert result == {
        'output_path': str(rgb_pair.with_suffix(".svg")),
        'width': 2,
        'height': 1,
        'channels': 3,
        'polygon_count': 2,
    }
    assert messages[-1] == "Completed successfully."


def test_help_exits_zero(capsys):
    assert cli.main(["--help"]) == 0
    assert "--stroke-width" in capsys.readouterr().out


@pytest.mark.parametrize("scale", ["0", "-2"])
def test_non_positive_scale_is_rejected(tmp_path, scale, capsys):
    missing = tmp_path / "never-read.png"
    assert cli.main([str(missing), "--scale", scale]) == 1

    captured = capsys.readouterr()
    assert "scale" in captured.err
    assert "Loading input image" not in captured.out
    assert not missing.with_suffix(".svg").exists()


def test_negative_stroke_width_is_rejected(rgb_pair):
    assert cli.main([str(rgb_pair), "-w", "-0.1"]) == 1
    assert not rgb_pair.with_suffix(".svg").exists()


def test_missing_input_is_rejected(capsys):
    assert cli.main([]) == 1
    assert "input file is required" in capsys.readouterr().err


def test_duplicate_input_is_rejected(rgb_pair):
    assert cli.main([str(rgb_pair), "-i", str(rgb_pair)]) == 1


def test_unknown_flag_exits_one():
    assert cli.main(["a.png", "--bogus"]) == 1


def test_decode_failure(tmp_path, capsys):
    missing = tmp_path / "missing.png"
    assert cli.main([str(missing)]) == 1

    out = capsys.readouterr().out
    assert "Failed to load input image:" in out
    assert "missing.png" in out
    assert not missing.with_suffix(".svg").exists()


def test_decode_failure_keeps_existing_output(tmp_path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"not an image")
    existing = tmp_path / "bad.svg"
    existing.write_text("previous")

    assert cli.main([str(bad)]) == 1
    assert existing.read_text() == "previous"


def test_save_failure(rgb_pair, tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    assert cli.main([str(rgb_pair), "-o", str(blocker / "out.svg")]) == 1
    assert "File output failed!" in capsys.readouterr().out


def test_config_file_defaults_and_override(rgb_pair, tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("schema: raster2vector.v1\nscale: 5\nstroke_width: 0.5\n")

    out_a = tmp_path / "a.svg"
    assert cli.main([str(rgb_pair), "-c", str(cfg), "-o", str(out_a)]) == 0
    root = _svg_root(out_a)
    assert float(root.get("width")) == 10.0
    assert float(root.find(f"{SVG_NS}polygon").get("stroke-width")) == 0.5

    out_b = tmp_path / "b.svg"
    assert cli.main([str(rgb_pair), "-c", str(cfg), "-o", str(out_b), "-s", "1"]) == 0
    assert float(_svg_root(out_b).get("width")) == 2.0


def test_invalid_config_exits_one(rgb_pair, tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("scale: -1\n")
    assert cli.main([str(rgb_pair), "-c", str(cfg)]) == 1
    assert not rgb_pair.with_suffix(".svg").exists()


def test_log_file_option(rgb_pair, tmp_path):
    log_path = tmp_path / "run.log"
    code = cli.main([str(rgb_pair), "--log-file", str(log_path), "--log-json", "--log-level", "debug"])
    assert code == 0

    text = log_path.read_text()
    assert '"app": "raster2vector"' in text
    assert "Wrote" in text
