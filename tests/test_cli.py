import pytest
from PIL import Image

from conftest import png_bytes
from qrstyle.cli import main


def test_presets_lists_all(capsys):
    main(["presets"])
    out = capsys.readouterr().out
    for preset_id in ("classic", "soft", "contrast", "flag"):
        assert preset_id in out


def test_generate_writes_png(tmp_path, capsys):
    output = tmp_path / "qr-code.png"
    main(["generate", "https://example.com", "-o", str(output), "--preset", "soft", "--shape", "pill"])
    with Image.open(output) as img:
        assert img.size == (512, 512)
    assert "Scanability: Good" in capsys.readouterr().out


def test_generate_with_logo(tmp_path):
    logo = tmp_path / "logo.png"
    logo.write_bytes(png_bytes((30, 30), (255, 0, 0, 255)))
    output = tmp_path / "out.png"
    main(["generate", "logo", "-o", str(output), "--logo", str(logo), "--logo-scale", "40"])
    with Image.open(output) as img:
        assert img.convert("RGBA").getpixel((256, 256)) == (255, 0, 0, 255)


def test_generate_blank_text_exits_nonzero(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["generate", "   ", "-o", str(tmp_path / "x.png")])
    assert excinfo.value.code == 1


def test_advise_exit_code_reflects_label(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["advise", "--color", "#000000", "--bg", "#000000"])
    assert excinfo.value.code == 1
    assert "Risky" in capsys.readouterr().out

    with pytest.raises(SystemExit) as excinfo:
        main(["advise", "--preset", "contrast"])
    assert excinfo.value.code == 0


def test_no_command_prints_help():
    with pytest.raises(SystemExit):
        main([])


def test_invalid_color_is_a_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["advise", "--bg", "not-a-color"])
    assert excinfo.value.code == 2
    assert "invalid color 'not-a-color'" in capsys.readouterr().err


def test_unreadable_logo_is_a_usage_error(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["generate", "x", "-o", str(tmp_path / "x.png"), "--logo", str(tmp_path / "missing.png")])
    assert excinfo.value.code == 2
    assert "cannot read" in capsys.readouterr().err
    assert not (tmp_path / "x.png").exists()


def test_text_over_capacity_exits_nonzero(tmp_path, capsys):
    output = tmp_path / "x.png"
    with pytest.raises(SystemExit) as excinfo:
        main(["generate", "x" * 4000, "-o", str(output)])
    assert excinfo.value.code == 1
    assert "Failed to generate QR code" in capsys.readouterr().out
    assert not output.exists()
