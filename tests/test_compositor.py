import pytest
from PIL import Image

from conftest import png_bytes
from qrstyle.compositor import CompositeRequest, compose, decode_image, fit_preserving_aspect, select_step
from qrstyle.errors import AssetLoadFailure
from qrstyle.style import LogoConfig

WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
GREEN = (0, 255, 0, 255)


@pytest.fixture
def emblem_path(tmp_path):
    path = tmp_path / "emblem.png"
    path.write_bytes(png_bytes((64, 64), BLUE))
    return path


def red_logo(size=(100, 100), **kwargs) -> LogoConfig:
    return LogoConfig(image_source=png_bytes(size, RED), **kwargs)


@pytest.mark.asyncio
async def test_no_logo_and_no_flag_returns_base(white_base):
    out = await compose(white_base, LogoConfig(), "classic", WHITE)
    assert out.tobytes() == white_base.tobytes()


@pytest.mark.asyncio
async def test_flag_without_logo_draws_emblem(white_base, emblem_path):
    out = await compose(white_base, LogoConfig(), "flag", WHITE, emblem_source=emblem_path)
    # emblem is 30% of 512 = 154px, centered
    assert out.getpixel((256, 256)) == BLUE
    assert out.getpixel((181, 256)) == BLUE
    assert out.getpixel((170, 256)) == WHITE


@pytest.mark.asyncio
async def test_missing_emblem_is_skipped(white_base, tmp_path):
    out = await compose(white_base, LogoConfig(), "flag", WHITE, emblem_source=tmp_path / "nope.png")
    assert out.tobytes() == white_base.tobytes()


@pytest.mark.asyncio
async def test_logo_takes_precedence_over_emblem(white_base, emblem_path):
    out = await compose(white_base, red_logo(), "flag", WHITE, emblem_source=emblem_path)
    assert out.getpixel((256, 256)) == RED
    # the emblem would have reached this far; the logo does not
    assert out.getpixel((185, 256)) == WHITE


@pytest.mark.asyncio
async def test_logo_scale_is_clamped_to_22_percent(white_base):
    big = await compose(white_base, red_logo(scale_percent=40), "classic", WHITE)
    capped = await compose(white_base, red_logo(scale_percent=22), "classic", WHITE)
    assert big.tobytes() == capped.tobytes()


@pytest.mark.asyncio
async def test_smaller_scale_gives_smaller_footprint(white_base):
    small = await compose(white_base, red_logo(scale_percent=10, framed=False), "classic", WHITE)
    capped = await compose(white_base, red_logo(scale_percent=22, framed=False), "classic", WHITE)
    assert small.getpixel((215, 256)) == WHITE
    assert capped.getpixel((215, 256)) == RED


@pytest.mark.asyncio
async def test_wide_logo_keeps_aspect_ratio(white_base):
    logo = red_logo(size=(200, 100), scale_percent=22, framed=False)
    out = await compose(white_base, logo, "classic", WHITE)
    # slot is ~113px square; a 2:1 logo is ~113x56
    assert out.getpixel((256, 256)) == RED
    assert out.getpixel((205, 256)) == RED
    assert out.getpixel((256, 215)) == WHITE


@pytest.mark.asyncio
async def test_frame_fills_slot_and_clips_corners(white_base):
    logo = red_logo(size=(200, 100), scale_percent=22, framed=True)
    out = await compose(white_base, logo, "classic", GREEN)
    assert out.getpixel((256, 215)) == GREEN  # inside slot, above the logo
    assert out.getpixel((201, 201)) == WHITE  # rounded corner is clipped away
    assert out.getpixel((256, 256)) == RED


@pytest.mark.asyncio
async def test_effective_background_accepts_color_string(white_base):
    logo = red_logo(size=(200, 100), framed=True)
    out = await compose(white_base, logo, "classic", "#00ff00")
    assert out.getpixel((256, 215)) == GREEN


@pytest.mark.asyncio
async def test_opacity_is_applied_to_logo_only(white_base):
    logo = red_logo(scale_percent=22, framed=True, opacity=0.5)
    out = await compose(white_base, logo, "classic", WHITE)
    r, g, b, a = out.getpixel((256, 256))
    assert r == 255
    assert 100 < g < 150 and 100 < b < 150
    assert a == 255
    # the frame itself is drawn at full strength
    framed = await compose(white_base, red_logo(size=(200, 100), opacity=0.5), "classic", GREEN)
    assert framed.getpixel((256, 215)) == GREEN


@pytest.mark.asyncio
async def test_opacity_is_clamped(white_base):
    over = await compose(white_base, red_logo(framed=False, opacity=2.0), "classic", WHITE)
    assert over.getpixel((256, 256)) == RED
    under = await compose(white_base, red_logo(framed=False, opacity=-1.0), "classic", WHITE)
    assert under.getpixel((256, 256)) == WHITE


@pytest.mark.asyncio
async def test_undecodable_logo_is_skipped(white_base):
    out = await compose(white_base, LogoConfig(image_source=b"not an image"), "classic", GREEN)
    assert out.tobytes() == white_base.tobytes()


@pytest.mark.asyncio
async def test_load_timeout_is_skipped(white_base):
    out = await compose(white_base, red_logo(), "classic", GREEN, timeout=0)
    assert out.tobytes() == white_base.tobytes()


@pytest.mark.asyncio
async def test_compose_does_not_mutate_base(white_base):
    before = white_base.tobytes()
    await compose(white_base, red_logo(), "classic", GREEN)
    assert white_base.tobytes() == before


def test_select_step_precedence():
    def request(logo, preset):
        return CompositeRequest(logo=logo, preset_id=preset, effective_background=WHITE, emblem_source=None)

    assert select_step(request(LogoConfig(), "flag")).name == "emblem"
    assert select_step(request(red_logo(), "flag")).name == "logo"
    assert select_step(request(red_logo(), "soft")).name == "logo"
    assert select_step(request(LogoConfig(), "soft")) is None


def test_fit_preserving_aspect():
    assert fit_preserving_aspect(200, 100, 100) == (100, 50)
    assert fit_preserving_aspect(100, 400, 100) == (25, 100)
    assert fit_preserving_aspect(50, 50, 100) == (100, 100)


def test_decode_image_raises_asset_load_failure():
    with pytest.raises(AssetLoadFailure) as excinfo:
        decode_image(b"\x00\x01\x02", asset="logo")
    assert excinfo.value.asset == "logo"


def test_decode_image_converts_to_rgba():
    img = decode_image(png_bytes((8, 4), RED))
    assert isinstance(img, Image.Image)
    assert img.mode == "RGBA"
    assert img.size == (8, 4)


@pytest.mark.asyncio
async def test_oversized_logo_is_skipped(white_base, oversized_png):
    out = await compose(white_base, LogoConfig(image_source=oversized_png), "classic", WHITE)
    assert out.tobytes() == white_base.tobytes()


def test_decode_image_rejects_decompression_bomb(oversized_png):
    with pytest.raises(AssetLoadFailure) as excinfo:
        decode_image(oversized_png, asset="logo")
    assert "exceeds limit" in excinfo.value.reason
