"""Test the command-line interface.

Tests for complex_fractals.cli.main:
    - render writes a PNG with the requested size
    - Invalid options exit with status 1 and an error message
    - draw-all writes one image per function, honouring --config
    - list-functions prints every function name

Run:
    pytest tests/test_cli.py -v
"""

import json

import pytest
from click.testing import CliRunner
from PIL import Image

from complex_fractals.cli.main import main


@pytest.fixture
def runner():
    return CliRunner()


def test_render_writes_png(runner, tmp_path):
    output = tmp_path / "newton.png"
    result = runner.invoke(main, ["render", "newton", str(output),
                                  "--width", "8", "--height", "6", "--workers", "1"])
    assert result.exit_code == 0, result.output
    with Image.open(output) as img:
        assert img.size == (8, 6)


def test_render_rejects_invalid_size(runner, tmp_path):
    output = tmp_path / "bad.png"
    result = runner.invoke(main, ["render", "mandelbrot", str(output), "--width", "0"])
    assert result.exit_code == 1
    assert "Error" in result.output
    assert not output.exists()


def test_draw_all_with_config(runner, tmp_path):
    config = tmp_path / "options.json"
    config.write_text(json.dumps({"width": 4, "height": 4}))
    out_dir = tmp_path / "renders"

    result = runner.invoke(main, ["--config", str(config), "draw-all",
                                  "--output-dir", str(out_dir), "--workers", "1"])
    assert result.exit_code == 0, result.output
    for name in ("mandelbrot", "newton", "acos", "sqrt"):
        with Image.open(out_dir / f"{name}.png") as img:
            assert img.size == (4, 4)


def test_list_functions(runner):
    result = runner.invoke(main, ["list-functions"])
    assert result.exit_code == 0
    for name in ("mandelbrot", "newton", "acos", "sqrt"):
        assert name in result.output


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "Complex Fractals v" in result.output
