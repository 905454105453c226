import cv2
import pytest

from conftest import blank_frame, paint_outline
from phasebot import bench


@pytest.fixture
def image_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "frame.png"
    cv2.imwrite(str(path), paint_outline(blank_frame(320, 240), 40, 40, 100, 40, thickness=6))
    return path


def test_reports_target(image_path, capsys):
    assert bench.main([str(image_path)]) == 0
    out = capsys.readouterr().out
    assert "1 region(s)" in out
    assert "Target x=40 y=40 w=100 h=40" in out
    assert "Bearing -10.94 deg" in out


def test_reports_missing_target(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "empty.png"
    cv2.imwrite(str(path), blank_frame())
    assert bench.main([str(path)]) == 0
    assert "No target (NO_REGIONS)" in capsys.readouterr().out


def test_unreadable_image(tmp_path, capsys):
    assert bench.main([str(tmp_path / "missing.png")]) == 2
    assert "Could not read image" in capsys.readouterr().err


def test_save_swapped(image_path, tmp_path):
    out = tmp_path / "swapped.png"
    assert bench.main([str(image_path), "--save-swapped", str(out)]) == 0
    swapped = cv2.imread(str(out))
    assert swapped is not None
    assert swapped.shape == (240, 320, 3)
